from sqlalchemy import BigInteger, Boolean, ForeignKey, String, false, true
from sqlalchemy.orm import Mapped, mapped_column, relationship
from footiedrop.db.session import Base
from footiedrop.models.user import BigIntPK

class UserSettings(Base):
    __tablename__ = "user_settings"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True
    )
    # false -> true only, flipped by a successful OTP verification
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    language: Mapped[str] = mapped_column(String(8), nullable=False, default="en", server_default="en")
    notifications_email: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    notifications_sms: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    security_two_factor_auth: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    user = relationship("User", back_populates="settings")
