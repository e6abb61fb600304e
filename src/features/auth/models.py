"""Authentication models (device sessions and password reset claims)."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, CreatedAtMixin


class DeviceState(StrEnum):
    """Lifecycle of a refresh token. ROTATED and REVOKED are terminal."""

    ISSUED = "ISSUED"
    ROTATED = "ROTATED"
    REVOKED = "REVOKED"


class UserDevice(Base, CreatedAtMixin):
    """One record per issued refresh token.

    Records are revoked, never deleted, so a retired token value keeps
    occupying its unique slot and can never authenticate again.
    """

    __tablename__ = "user_devices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    refresh_token: Mapped[str] = mapped_column(String(1024), unique=True, nullable=False, index=True)

    # Client info
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)  # IPv6 max length is 45
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    is_revoked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # Successor issued when this token was rotated
    replaced_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("user_devices.id", ondelete="SET NULL"), nullable=True
    )

    @property
    def state(self) -> DeviceState:
        if not self.is_revoked:
            return DeviceState.ISSUED
        if self.replaced_by_id is not None:
            return DeviceState.ROTATED
        return DeviceState.REVOKED


class PasswordResetToken(Base, CreatedAtMixin):
    """Issued password reset claim, consumed on first successful use."""

    __tablename__ = "password_reset_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    jti: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
