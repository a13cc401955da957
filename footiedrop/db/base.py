# Importing this module registers every table on Base.metadata.
from footiedrop.db.session import Base

from footiedrop.models.user import User  # noqa: F401
from footiedrop.models.settings import UserSettings  # noqa: F401
from footiedrop.models.verification import VerificationOtp  # noqa: F401

__all__ = ["Base"]
