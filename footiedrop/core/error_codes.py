from enum import Enum

class ErrorCode(str, Enum):
    # --- Generic / HTTP-ish ---
    INTERNAL_ERROR = "internal_error"
    BAD_REQUEST = "bad_request"
    VALIDATION_ERROR = "validation_error"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RATE_LIMITED = "rate_limited"

    # --- Accounts ---
    EMAIL_ALREADY_REGISTERED = "email_already_registered"
    PHONE_ALREADY_REGISTERED = "phone_already_registered"
    PASSWORDS_DO_NOT_MATCH = "passwords_do_not_match"
    INVALID_CREDENTIALS = "invalid_credentials"
    LOGIN_BLOCKED = "login_blocked"                 # throttle active
    USER_NOT_FOUND = "user_not_found"

    # --- Email verification (OTP) ---
    EMAIL_ALREADY_VERIFIED = "email_already_verified"
    VERIFICATION_CODE_INVALID = "verification_code_invalid"
    VERIFICATION_CODE_EXPIRED = "verification_code_expired"
    VERIFICATION_RESEND_TOO_SOON = "verification_resend_too_soon"
    VERIFICATION_ATTEMPTS_BLOCKED = "verification_attempts_blocked"
    OTP_ALREADY_ISSUED = "otp_already_issued"

    # --- Sessions / tokens ---
    TOKEN_MISSING = "token_missing"
    TOKEN_INVALID = "token_invalid"
    TOKEN_EXPIRED = "token_expired"
    SESSION_INVALID = "session_invalid"

    # --- Password reset ---
    PASSWORD_RESET_INVALID = "password_reset_invalid"
    PASSWORD_RESET_EXPIRED = "password_reset_expired"

    # --- Presence ---
    EMAIL_NOT_VERIFIED = "email_not_verified"
    STATUS_ALREADY_CHANGED = "status_already_changed"

    # --- Email / Messaging ---
    EMAIL_SEND_FAILED = "email_send_failed"

    # --- Infra / Storage ---
    DATABASE_ERROR = "database_error"
    UNIQUE_CONSTRAINT_VIOLATION = "unique_constraint_violation"
