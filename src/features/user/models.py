"""User domain models."""

from enum import StrEnum

from pwdlib import PasswordHash
from pwdlib.hashers.bcrypt import BcryptHasher
from sqlalchemy import Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.config.settings import settings
from src.database.base import Base, TimestampMixin


class UserRole(StrEnum):
    """Platform-level user roles.

    USER: Regular account. Authority inside a workspace comes from
          ownership and memberships, never from this field.
    ADMIN: Platform administrator.
    """

    USER = "USER"
    ADMIN = "ADMIN"


# bcrypt with a cost factor of 10; checkpw compares in constant time
pwd_hasher = PasswordHash((BcryptHasher(rounds=settings.password_hash_rounds),))


class User(Base, TimestampMixin):
    """User model for authentication and authorization."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)

    # Authentication
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    role: Mapped[str] = mapped_column(
        Enum(UserRole, native_enum=False, length=50),
        nullable=False,
        default=UserRole.USER.value,
        server_default=UserRole.USER.value,
    )

    def verify_password(self, plain_password: str) -> bool:
        """Verify a password against the stored bcrypt hash."""
        return pwd_hasher.verify(plain_password, self.hashed_password)

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password with a freshly generated salt."""
        return pwd_hasher.hash(password)
