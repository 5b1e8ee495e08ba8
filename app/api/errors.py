from fastapi import HTTPException, status
from app.services.access_gate import GateResult
from app.services.share_service import DenyReason

DENY_STATUS_CODES = {
    DenyReason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    DenyReason.EXPIRED: status.HTTP_410_GONE,
    DenyReason.PASSWORD_REQUIRED: status.HTTP_401_UNAUTHORIZED,
    DenyReason.PASSWORD_INCORRECT: status.HTTP_401_UNAUTHORIZED,
    DenyReason.FORBIDDEN: status.HTTP_403_FORBIDDEN,
}

DENY_MESSAGES = {
    DenyReason.EXPIRED: "Share link has expired",
    DenyReason.PASSWORD_REQUIRED: "Password required",
    DenyReason.PASSWORD_INCORRECT: "Incorrect password",
    DenyReason.FORBIDDEN: "Not authorized",
}


def unwrap(result: GateResult, not_found_message: str = "Not found"):
    """Return the gate's value or raise the matching HTTP error."""
    if result.allowed:
        return result.value

    raise HTTPException(
        status_code=DENY_STATUS_CODES[result.denial],
        detail=DENY_MESSAGES.get(result.denial, not_found_message)
    )
