from datetime import datetime

from pydantic import BaseModel, Field, EmailStr

class RegisterIn(BaseModel):
    first_name: str
    last_name: str
    email: EmailStr
    phone: str
    password: str = Field(min_length=6)
    confirm_password: str

class IssueOtpIn(BaseModel):
    email: EmailStr
    resend: bool = False

class OtpIssued(BaseModel):
    user_id: int
    expires_at: datetime

class VerifyOtpIn(BaseModel):
    email: EmailStr
    code: str = Field(pattern=r"^\d{4}$")

class LoginIn(BaseModel):
    email: EmailStr
    password: str

class SessionOut(BaseModel):
    session_token: str

class ForgotPasswordIn(BaseModel):
    email: EmailStr

class ResetTokenCheck(BaseModel):
    valid: bool

class ResetPasswordIn(BaseModel):
    token: str
    new_password: str = Field(min_length=6)

class ChangePasswordIn(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)
