from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class RegisterSchema(BaseModel):
    username: str = Field(min_length=3, max_length=30)
    password: str = Field(min_length=6, max_length=72)
    email: Optional[EmailStr] = None


class LoginSchema(BaseModel):
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)


class UserData(BaseModel):
    id: int
    username: str
    email: Optional[str] = None
    isAdmin: bool


class AuthData(BaseModel):
    user: UserData
    token: str


class AuthResponse(BaseModel):
    success: bool = True
    data: AuthData


class UserResponse(BaseModel):
    success: bool = True
    data: UserData


class UpdateUserSchema(BaseModel):
    username: Optional[str] = Field(default=None, min_length=3, max_length=30)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6, max_length=72)
    isAdmin: Optional[bool] = None


class UserListResponse(BaseModel):
    success: bool = True
    data: List[UserData]
