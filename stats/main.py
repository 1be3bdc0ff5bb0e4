from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.auth import get_current_admin
from core.database import get_db
from core.models import User
from stats.schemas import DashboardResponse, PendingActivitiesResponse, TransactionListResponse
from stats.stats import get_dashboard_stats, get_pending_summary, list_transactions

router = APIRouter(prefix="/api/admin", tags=["Statistics"])


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return {
        "success": True,
        "data": get_dashboard_stats(db)
    }


@router.get("/transactions", response_model=TransactionListResponse)
def transactions(
    status: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(20),
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return {
        "success": True,
        "data": list_transactions(db, status=status, page=page, limit=limit)
    }


@router.get("/pending", response_model=PendingActivitiesResponse)
def pending_activities(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return {
        "success": True,
        "data": get_pending_summary(db)
    }
