from pydantic import BaseModel, ConfigDict, EmailStr

from footiedrop.models.enums import UserStatus

class SettingsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    verified: bool
    language: str
    notifications_email: bool
    notifications_sms: bool
    security_two_factor_auth: bool

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    email: EmailStr
    phone: str
    status: UserStatus
    settings: SettingsOut | None = None

class StatusOut(BaseModel):
    status: UserStatus
