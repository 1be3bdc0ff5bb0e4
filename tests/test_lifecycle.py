from decimal import Decimal

import pytest
from sqlalchemy import func
from sqlalchemy.exc import OperationalError

from core.exceptions import (
    AlreadyFinalizedError,
    InsufficientBalanceError,
    LockedAssetError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from core.models import Holding, Transaction, TransactionStatus, TransactionType
from ledger import store
from ledger.audit import TransactionMetadata
from transactions.lifecycle import PaymentProof, submit_buy, submit_withdrawal, verify

PROOF = PaymentProof(transaction_hash="0xabc", sender_address="TSender1", payment_method="USDT")


def holding_of(db, user, coin):
    db.expire_all()
    return store.get_holding(db, user.id, coin.id)


def buy_and_approve(db, user, coin, amount):
    txn = submit_buy(db, user.id, coin.id, amount, PROOF)
    return verify(db, txn.id, "approve", "ok")


class TestSubmitBuy:

    def test_creates_pending_transaction_without_touching_holding(self, db, user, btc):
        txn = submit_buy(db, user.id, btc.id, "2.5", PROOF)

        assert txn.status == TransactionStatus.PENDING_VERIFICATION
        assert txn.type == TransactionType.BUY
        assert txn.amount == Decimal("2.5")
        assert txn.price == Decimal("100")
        assert txn.total_value == Decimal("250")
        assert txn.payment_method == "USDT"
        assert holding_of(db, user, btc) is None

        meta = TransactionMetadata.load(txn.meta)
        assert meta.transactionHash == "0xabc"
        assert meta.senderAddress == "TSender1"
        assert meta.submittedAt is not None
        assert meta.verifications == []

    @pytest.mark.parametrize("amount", ["0", "-1", "abc", "0.000000001"])
    def test_rejects_bad_amounts(self, db, user, btc, amount):
        with pytest.raises(ValidationError):
            submit_buy(db, user.id, btc.id, amount, PROOF)
        assert db.query(Transaction).count() == 0

    @pytest.mark.parametrize("proof", [
        PaymentProof(transaction_hash="", sender_address="TSender1", payment_method="USDT"),
        PaymentProof(transaction_hash="0xabc", sender_address="  ", payment_method="SOL"),
        PaymentProof(transaction_hash="0xabc", sender_address="TSender1", payment_method="BTC"),
        PaymentProof(transaction_hash="0xabc", sender_address="TSender1", payment_method=""),
    ])
    def test_rejects_incomplete_proof(self, db, user, btc, proof):
        with pytest.raises(ValidationError):
            submit_buy(db, user.id, btc.id, "1", proof)

    def test_unknown_coin(self, db, user):
        with pytest.raises(NotFoundError):
            submit_buy(db, user.id, 999, "1", PROOF)

    def test_uses_injected_reference_factory(self, db, user, btc):
        txn = submit_buy(db, user.id, btc.id, "1", PROOF, id_factory=lambda: "ref-0001")
        assert txn.reference == "ref-0001"

    def test_price_is_snapshotted_at_submission(self, db, user, btc):
        txn = submit_buy(db, user.id, btc.id, "1", PROOF)

        btc.price = Decimal("5000")
        db.commit()

        verify(db, txn.id, "approve")
        holding = holding_of(db, user, btc)
        assert holding.purchase_price == Decimal("100")


class TestVerifyBuy:

    def test_approve_creates_holding(self, db, user, btc):
        txn = buy_and_approve(db, user, btc, "3")

        assert txn.status == TransactionStatus.COMPLETED
        holding = holding_of(db, user, btc)
        assert holding.amount == Decimal("3")
        assert holding.purchase_price == Decimal("100")

    def test_weighted_average_merge(self, db, user, btc, give_holding):
        give_holding(user, btc, "10", "100")

        btc.price = Decimal("200")
        db.commit()
        buy_and_approve(db, user, btc, "10")

        holding = holding_of(db, user, btc)
        assert holding.amount == Decimal("20")
        assert holding.purchase_price == Decimal("150")
        assert db.query(Holding).count() == 1

    def test_reject_leaves_ledger_untouched(self, db, user, btc):
        txn = submit_buy(db, user.id, btc.id, "3", PROOF)
        txn = verify(db, txn.id, "reject", "hash not found on chain")

        assert txn.status == TransactionStatus.REJECTED
        assert holding_of(db, user, btc) is None

    def test_audit_entry_is_appended_and_proof_preserved(self, db, user, admin, btc):
        txn = submit_buy(db, user.id, btc.id, "1", PROOF)
        txn = verify(db, txn.id, "approve", "  confirmed on tronscan ", admin_id=admin.id)

        meta = TransactionMetadata.load(txn.meta)
        assert meta.transactionHash == "0xabc"
        assert len(meta.verifications) == 1
        entry = meta.last_verification
        assert entry.decision == "approve"
        assert entry.status == TransactionStatus.COMPLETED
        assert entry.adminNote == "confirmed on tronscan"
        assert entry.adminId == admin.id
        assert entry.bulk is False

    def test_default_admin_note(self, db, user, btc):
        txn = submit_buy(db, user.id, btc.id, "1", PROOF)
        txn = verify(db, txn.id, "reject", "")

        meta = TransactionMetadata.load(txn.meta)
        assert meta.last_verification.adminNote == "Transaction manually verified by admin"

    def test_unknown_transaction(self, db):
        with pytest.raises(NotFoundError):
            verify(db, 12345, "approve")

    def test_unknown_decision(self, db, user, btc):
        txn = submit_buy(db, user.id, btc.id, "1", PROOF)
        with pytest.raises(ValidationError):
            verify(db, txn.id, "maybe")


class TestIdempotence:

    @pytest.mark.parametrize("first,second", [
        ("approve", "approve"),
        ("approve", "reject"),
        ("reject", "approve"),
        ("reject", "reject"),
    ])
    def test_second_verify_fails_without_ledger_change(self, db, user, btc, first, second):
        txn = submit_buy(db, user.id, btc.id, "4", PROOF)
        verify(db, txn.id, first)
        before = holding_of(db, user, btc)
        before_amount = before.amount if before else None

        with pytest.raises(AlreadyFinalizedError):
            verify(db, txn.id, second)

        after = holding_of(db, user, btc)
        assert (after.amount if after else None) == before_amount

        db.expire_all()
        meta = TransactionMetadata.load(db.get(Transaction, txn.id).meta)
        assert len(meta.verifications) == 1

    def test_concurrent_verify_applies_once(self, session_factory, db, user, btc, monkeypatch):
        txn = submit_buy(db, user.id, btc.id, "5", PROOF)
        txn_id = txn.id

        real_claim = store.claim_pending
        rival = {}

        def racing_claim(session, transaction_id, new_status, meta):
            # the first caller is overtaken by a second reviewer that also saw the row pending
            if "done" not in rival:
                rival["done"] = False
                other = session_factory()
                try:
                    rival["txn"] = verify(other, transaction_id, "approve", "second reviewer")
                    rival["done"] = True
                finally:
                    other.close()
            return real_claim(session, transaction_id, new_status, meta)

        monkeypatch.setattr(store, "claim_pending", racing_claim)

        with pytest.raises(AlreadyFinalizedError):
            verify(db, txn_id, "approve", "first reviewer")

        assert rival["done"] is True

        check = session_factory()
        try:
            holdings = check.query(Holding).filter_by(user_id=user.id, coin_id=btc.id).all()
            assert len(holdings) == 1
            assert holdings[0].amount == Decimal("5")

            stored = check.get(Transaction, txn_id)
            assert stored.status == TransactionStatus.COMPLETED
            meta = TransactionMetadata.load(stored.meta)
            assert [v.adminNote for v in meta.verifications] == ["second reviewer"]
        finally:
            check.close()

    def test_storage_failure_rolls_back_status(self, db, user, btc, monkeypatch):
        txn = submit_buy(db, user.id, btc.id, "5", PROOF)

        def broken_credit(*args, **kwargs):
            raise OperationalError("UPDATE holdings", {}, Exception("disk I/O error"))

        monkeypatch.setattr(store, "credit_holding", broken_credit)

        with pytest.raises(StorageError):
            verify(db, txn.id, "approve")

        db.expire_all()
        assert db.get(Transaction, txn.id).status == TransactionStatus.PENDING_VERIFICATION
        assert holding_of(db, user, btc) is None

        # the guarded transition makes a retry safe once storage recovers
        monkeypatch.undo()
        verify(db, txn.id, "approve")
        assert holding_of(db, user, btc).amount == Decimal("5")


class TestWithdrawal:

    def test_debits_immediately(self, db, user, btc, give_holding):
        give_holding(user, btc, "10", "80")

        txn = submit_withdrawal(db, user.id, btc.id, "4", "TWithdraw1")

        assert txn.status == TransactionStatus.PENDING_VERIFICATION
        assert txn.type == TransactionType.SELL
        assert txn.payment_method == "crypto_withdrawal"
        assert holding_of(db, user, btc).amount == Decimal("6")

        meta = TransactionMetadata.load(txn.meta)
        assert meta.withdrawalAddress == "TWithdraw1"
        assert meta.holdingPriceAtDebit == Decimal("80")

    def test_insufficient_balance(self, db, user, btc, give_holding):
        give_holding(user, btc, "1", "80")

        with pytest.raises(InsufficientBalanceError):
            submit_withdrawal(db, user.id, btc.id, "1.00000001", "TWithdraw1")

        assert holding_of(db, user, btc).amount == Decimal("1")
        assert db.query(Transaction).count() == 0

    def test_no_holding_is_insufficient_balance(self, db, user, btc):
        with pytest.raises(InsufficientBalanceError):
            submit_withdrawal(db, user.id, btc.id, "1", "TWithdraw1")

    def test_locked_coin(self, db, user, make_coin, give_holding):
        locked = make_coin("LCK", "3", is_locked=True)
        give_holding(user, locked, "10", "3")

        with pytest.raises(LockedAssetError):
            submit_withdrawal(db, user.id, locked.id, "1", "TWithdraw1")
        assert holding_of(db, user, locked).amount == Decimal("10")

    def test_missing_address(self, db, user, btc, give_holding):
        give_holding(user, btc, "10", "80")
        with pytest.raises(ValidationError):
            submit_withdrawal(db, user.id, btc.id, "1", " ")

    def test_approve_does_not_debit_again(self, db, user, btc, give_holding):
        give_holding(user, btc, "10", "80")
        txn = submit_withdrawal(db, user.id, btc.id, "4", "TWithdraw1")

        txn = verify(db, txn.id, "approve", "sent")

        assert txn.status == TransactionStatus.COMPLETED
        assert holding_of(db, user, btc).amount == Decimal("6")

    def test_reject_restores_exact_amount(self, db, user, btc, give_holding):
        give_holding(user, btc, "7.12345678", "81.5")
        txn = submit_withdrawal(db, user.id, btc.id, "2.00000001", "TWithdraw1")

        verify(db, txn.id, "reject", "address on blocklist")

        holding = holding_of(db, user, btc)
        assert holding.amount == Decimal("7.12345678")
        assert holding.purchase_price == Decimal("81.5")


class TestZeroing:

    def test_full_withdrawal_removes_row(self, db, user, btc, give_holding):
        give_holding(user, btc, "2.5", "80")

        txn = submit_withdrawal(db, user.id, btc.id, "2.5", "TWithdraw1")
        assert holding_of(db, user, btc) is None

        verify(db, txn.id, "approve")
        assert holding_of(db, user, btc) is None

    def test_later_buy_creates_fresh_row(self, db, user, btc, give_holding):
        give_holding(user, btc, "2.5", "80")
        submit_withdrawal(db, user.id, btc.id, "2.5", "TWithdraw1")

        buy_and_approve(db, user, btc, "1")

        holding = holding_of(db, user, btc)
        assert db.query(Holding).count() == 1
        assert holding.amount == Decimal("1")
        assert holding.purchase_price == Decimal("100")

    def test_rejecting_full_withdrawal_recreates_row(self, db, user, btc, give_holding):
        give_holding(user, btc, "2.5", "80")
        txn = submit_withdrawal(db, user.id, btc.id, "2.5", "TWithdraw1")

        verify(db, txn.id, "reject")

        holding = holding_of(db, user, btc)
        assert holding.amount == Decimal("2.5")
        assert holding.purchase_price == Decimal("80")


def test_holding_matches_transaction_history(db, user, btc):
    """Holding == completed buys - completed sells - sells still awaiting review."""
    buy_and_approve(db, user, btc, "10")
    rejected_buy = submit_buy(db, user.id, btc.id, "50", PROOF)
    verify(db, rejected_buy.id, "reject")
    submit_buy(db, user.id, btc.id, "7", PROOF)  # stays pending

    approved_sell = submit_withdrawal(db, user.id, btc.id, "3", "TWithdraw1")
    verify(db, approved_sell.id, "approve")
    rejected_sell = submit_withdrawal(db, user.id, btc.id, "2", "TWithdraw1")
    verify(db, rejected_sell.id, "reject")
    submit_withdrawal(db, user.id, btc.id, "1.5", "TWithdraw1")  # stays pending
    buy_and_approve(db, user, btc, "0.25")

    def total(type_, status):
        value = (
            db.query(func.coalesce(func.sum(Transaction.amount), 0))
            .filter_by(user_id=user.id, coin_id=btc.id, type=type_, status=status)
            .scalar()
        )
        return Decimal(str(value))

    expected = (
        total(TransactionType.BUY, TransactionStatus.COMPLETED)
        - total(TransactionType.SELL, TransactionStatus.COMPLETED)
        - total(TransactionType.SELL, TransactionStatus.PENDING_VERIFICATION)
    )

    holding = holding_of(db, user, btc)
    assert expected == Decimal("5.75")
    assert holding.amount == expected
    assert holding.amount >= 0


class TestLedgerLimits:

    @pytest.mark.parametrize("amount", ["10000000000", "1e30", "1E+1000"])
    def test_rejects_amounts_beyond_ten_integer_digits(self, db, user, btc, amount):
        with pytest.raises(ValidationError) as exc:
            submit_buy(db, user.id, btc.id, amount, PROOF)

        assert exc.value.message == "Amount exceeds the ledger limit of 10 integer digits"
        assert db.query(Transaction).count() == 0

    def test_rejects_total_value_beyond_limit(self, db, user, btc, give_holding):
        give_holding(user, btc, "200000000", "100")

        with pytest.raises(ValidationError):
            submit_buy(db, user.id, btc.id, "100000000", PROOF)
        with pytest.raises(ValidationError):
            submit_withdrawal(db, user.id, btc.id, "100000000", "TWithdraw1")

        assert holding_of(db, user, btc).amount == Decimal("200000000")

    def test_largest_amount_is_stored_exactly(self, db, user, make_coin):
        one = make_coin("ONE", "1")

        txn = submit_buy(db, user.id, one.id, "9999999999.99999999", PROOF)
        verify(db, txn.id, "approve")

        db.expire_all()
        assert db.get(Transaction, txn.id).total_value == Decimal("9999999999.99999999")
        assert holding_of(db, user, one).amount == Decimal("9999999999.99999999")

    def test_total_value_rounds_half_even(self, db, user, make_coin):
        dust = make_coin("DUST", "0.00000001")

        down = submit_buy(db, user.id, dust.id, "2.5", PROOF)
        up = submit_buy(db, user.id, dust.id, "3.5", PROOF)

        assert down.total_value == Decimal("0.00000002")
        assert up.total_value == Decimal("0.00000004")

    def test_withdraw_and_reject_restores_eighteen_digit_holding(self, db, user, btc, give_holding):
        give_holding(user, btc, "1234567890.12345678", "100")

        txn = submit_withdrawal(db, user.id, btc.id, "0.00000001", "TWithdraw1")
        assert holding_of(db, user, btc).amount == Decimal("1234567890.12345677")

        verify(db, txn.id, "reject")

        holding = holding_of(db, user, btc)
        assert holding.amount == Decimal("1234567890.12345678")
        assert holding.purchase_price == Decimal("100")
