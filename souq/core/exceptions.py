"""
Error taxonomy shared by services and the HTTP layer.

Services raise these; main.py renders them into the
{"ok": false, "error": {...}} envelope with the carried status code.
"""


class SouqError(Exception):
    """Base for every user-facing, structured failure."""
    code = "ERROR"
    status_code = 400

    def __init__(self, message: str, code: str | None = None, status_code: int | None = None, details: dict | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_payload(self) -> dict:
        error = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return error


class ValidationFailed(SouqError):
    code = "VALIDATION_ERROR"


class NotFoundError(SouqError):
    code = "NOT_FOUND"
    status_code = 404


class ForbiddenError(SouqError):
    code = "FORBIDDEN"
    status_code = 403


class RateLimitedError(SouqError):
    code = "RATE_LIMITED"
    status_code = 429

    def __init__(self, retry_after_ms: int, message: str | None = None):
        minutes = max(1, -(-retry_after_ms // 60000))
        super().__init__(message or f"Too many attempts. Try again in {minutes} minutes.")
        self.retry_after_ms = retry_after_ms

    @property
    def retry_after_seconds(self) -> int:
        return max(1, -(-self.retry_after_ms // 1000))

    def to_payload(self) -> dict:
        error = super().to_payload()
        error["retryAfter"] = self.retry_after_seconds
        return error


class VoucherRedemptionError(SouqError):
    """Domain-state rejection of a redemption attempt."""

    MESSAGES = {
        "INVALID_CODE": "Invalid voucher code",
        "VOUCHER_USED": "This voucher has already been used",
        "VOUCHER_DISABLED": "This voucher has been disabled",
        "VOUCHER_EXPIRED": "This voucher has expired",
        "SERVICE_ERROR": "Voucher system is temporarily unavailable",
    }

    def __init__(self, code: str):
        status_code = 500 if code == "SERVICE_ERROR" else 400
        super().__init__(self.MESSAGES[code], code=code, status_code=status_code)


class VoucherCodecError(Exception):
    """Hashing or code generation could not be performed."""


class VoucherGenerationError(SouqError):
    code = "GENERATION_FAILED"
    status_code = 500


class OrderError(SouqError):
    """Checkout rejected; nothing was written."""


class InvalidTransitionError(SouqError):
    code = "INVALID_STATUS_TRANSITION"
