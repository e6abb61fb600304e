"""Device/session store: one record per issued refresh token.

Every state change is a conditional UPDATE guarded by ``is_revoked = false``
so that two concurrent requests racing on the same token cannot both win;
the database's row-level update semantics decide the single winner.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .exceptions import RefreshTokenCollisionException, RefreshTokenInvalidException
from .models import UserDevice

logger = logging.getLogger(__name__)


class DeviceStore:
    """Persistence operations on refresh-token device records."""

    @staticmethod
    async def find_by_token_value(session: AsyncSession, token_value: str) -> UserDevice | None:
        """Fetch the record for a token value, bypassing stale identity-map state."""
        stmt = (
            select(UserDevice)
            .where(UserDevice.refresh_token == token_value)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        session: AsyncSession,
        user_id: int,
        token_value: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> UserDevice:
        """Persist a new ISSUED record for a refresh token.

        Raises:
            RefreshTokenCollisionException: If the token value is already on
                record. Everything pending in the session is rolled back,
                then only the revocation of the existing record is committed.

        """
        existing = await DeviceStore.find_by_token_value(session, token_value)
        if existing is not None:
            existing_id = existing.id
            logger.warning(f"Refresh token collision for user {user_id}, revoking device {existing_id}")
            # The request fails, so none of its other writes may persist
            await session.rollback()
            await DeviceStore.revoke(session, token_value)
            await session.commit()
            raise RefreshTokenCollisionException()

        device = UserDevice(
            user_id=user_id,
            refresh_token=token_value,
            ip_address=ip_address,
            user_agent=user_agent,
            is_revoked=False,
        )
        session.add(device)
        await session.flush()
        return device

    @staticmethod
    async def revoke(session: AsyncSession, token_value: str) -> bool:
        """Mark a record revoked.

        Idempotent: returns True only for the call that performed the
        transition, False if the token is unknown or already revoked.
        """
        stmt = (
            update(UserDevice)
            .where(UserDevice.refresh_token == token_value, UserDevice.is_revoked.is_(False))
            .values(is_revoked=True, revoked_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1

    @staticmethod
    async def revoke_and_replace(
        session: AsyncSession,
        old_token_value: str,
        user_id: int,
        new_token_value: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> UserDevice:
        """Rotate a refresh token: retire the old record and issue its successor.

        Raises:
            RefreshTokenInvalidException: If the old record was not in ISSUED
                state any more (revoked, or rotated by a concurrent request).

        """
        if not await DeviceStore.revoke(session, old_token_value):
            raise RefreshTokenInvalidException()

        successor = await DeviceStore.create(session, user_id, new_token_value, ip_address, user_agent)

        link = (
            update(UserDevice)
            .where(UserDevice.refresh_token == old_token_value)
            .values(replaced_by_id=successor.id)
            .execution_options(synchronize_session=False)
        )
        await session.execute(link)
        return successor

    @staticmethod
    async def revoke_all_for_user(session: AsyncSession, user_id: int) -> int:
        """Revoke every ISSUED record of a user. Returns the number revoked."""
        stmt = (
            update(UserDevice)
            .where(UserDevice.user_id == user_id, UserDevice.is_revoked.is_(False))
            .values(is_revoked=True, revoked_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount

    @staticmethod
    async def list_active_for_user(session: AsyncSession, user_id: int) -> list[UserDevice]:
        """List a user's ISSUED records, newest first."""
        stmt = (
            select(UserDevice)
            .where(UserDevice.user_id == user_id, UserDevice.is_revoked.is_(False))
            .order_by(UserDevice.created_at.desc(), UserDevice.id.desc())
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
