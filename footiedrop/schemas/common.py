from typing import Any, Dict

from pydantic import BaseModel

from footiedrop.core.error_codes import ErrorCode


class Message(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    # clients branch on error_code; user_message may be shown as is
    error_code: ErrorCode
    user_message: str | None = None
    details: Dict[str, Any] | None = None

    @classmethod
    def from_detail(cls, detail: Any) -> "ErrorResponse":
        """Build the envelope from an AppException's ``detail`` dict."""
        payload = detail if isinstance(detail, dict) else {}
        return cls(
            error_code=payload.get("error_code", ErrorCode.INTERNAL_ERROR),
            user_message=payload.get("user_message"),
            details=payload.get("details"),
        )
