from sqlalchemy import BigInteger, String, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column
from footiedrop.db.session import Base
from footiedrop.models.user import BigIntPK

class VerificationOtp(Base):
    __tablename__ = "verification_otps"
    # at most one live code per user, enforced by the store
    __table_args__ = (UniqueConstraint("user_id", name="uq_verification_otps_user"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(4), nullable=False)
    expires_at: Mapped[str] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
