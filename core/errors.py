class ErrorCode:
    VALIDATION_ERROR = "VALIDATION_ERROR"

    AUTH_INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"
    AUTH_UNAUTHORIZED = "AUTH_UNAUTHORIZED"
    AUTH_FORBIDDEN = "AUTH_FORBIDDEN"
    USERNAME_TAKEN = "USERNAME_TAKEN"

    USER_NOT_FOUND = "USER_NOT_FOUND"
    COIN_NOT_FOUND = "COIN_NOT_FOUND"
    COIN_ALREADY_EXISTS = "COIN_ALREADY_EXISTS"
    COIN_IN_USE = "COIN_IN_USE"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"

    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    ASSET_LOCKED = "ASSET_LOCKED"
    ALREADY_FINALIZED = "ALREADY_FINALIZED"

    STORAGE_ERROR = "STORAGE_ERROR"


class ErrorMessage:
    INVALID_CREDENTIALS = "Invalid username or password"
    UNAUTHORIZED = "You are not authorized to perform this action"
    FORBIDDEN = "Forbidden: Admin access required"
    USERNAME_TAKEN = "Username already exists"

    USER_NOT_FOUND = "User not found"
    COIN_NOT_FOUND = "Coin not found"
    COIN_NOT_DELETABLE = "Coin not found or cannot be deleted (default coins are protected)"
    TRANSACTION_NOT_FOUND = "Transaction not found"

    AMOUNT_NOT_POSITIVE = "Amount must be a valid positive number"
    AMOUNT_TOO_LARGE = "Amount exceeds the ledger limit of 10 integer digits"
    PROOF_INCOMPLETE = "Payment details are incomplete. Transaction hash and sender address are required."
    INVALID_PAYMENT_METHOD = "Invalid payment method. Only USDT and SOL are accepted."
    WITHDRAWAL_ADDRESS_REQUIRED = "Withdrawal address is required"
    ASSET_LOCKED = (
        "The selected cryptocurrency is currently locked and cannot be withdrawn at this time. "
        "Please try again after the lock period has expired."
    )
    ALREADY_FINALIZED = "Only transactions with 'pending_verification' status can be verified"
    EMPTY_BULK_SELECTION = "Transaction IDs array is required"

    STORAGE_ERROR = "The ledger could not be updated, please retry"
