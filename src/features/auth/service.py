"""Authentication service layer.

Refresh tokens move through ISSUED -> ROTATED or ISSUED -> REVOKED and never
return to ISSUED. Every successful refresh rotates the token, so a captured
refresh token can be used once at most.
"""

import logging
from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import settings
from src.features.user.exceptions import EmailAlreadyExists, UserNotFound
from src.features.user.models import User, UserRole
from src.shared.mail.mailer import Mailer

from .device_store import DeviceStore
from .exceptions import (
    InvalidCredentialsException,
    InvalidTokenException,
    RefreshTokenExpiredOrTamperedException,
    RefreshTokenInvalidException,
    RefreshTokenMissingException,
)
from .jwt_utils import TokenKind, issue_token, token_lifetime, verify_token
from .models import PasswordResetToken, UserDevice
from .schemas import TokenPair

logger = logging.getLogger(__name__)


class AuthService:
    """Service for registration, login and refresh-token lifecycle."""

    @staticmethod
    def mint_token_pair(user_id: int) -> TokenPair:
        """Sign a new access/refresh pair without persisting anything."""
        return TokenPair(
            access_token=issue_token(TokenKind.ACCESS, user_id),
            refresh_token=issue_token(TokenKind.REFRESH, user_id),
            expires_in=int(token_lifetime(TokenKind.ACCESS).total_seconds()),
        )

    @staticmethod
    async def create_tokens(
        session: AsyncSession, user: User, ip_address: str | None = None, user_agent: str | None = None
    ) -> TokenPair:
        """Issue a token pair and persist an ISSUED device record for it.

        Args:
            session: Database session
            user: Authenticated user
            ip_address: Requester's IP address (optional)
            user_agent: Requester's User-Agent header (optional)

        Returns:
            TokenPair with access token, refresh token, and expiration time

        """
        tokens = AuthService.mint_token_pair(user.id)
        await DeviceStore.create(session, user.id, tokens.refresh_token, ip_address, user_agent)
        return tokens

    @staticmethod
    async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
        stmt = select(User).where(User.email == email)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def register(
        session: AsyncSession,
        name: str,
        email: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> tuple[User, TokenPair]:
        """Create an account and sign the new user in.

        Raises:
            EmailAlreadyExists: If the email is already registered

        """
        if await AuthService.get_user_by_email(session, email) is not None:
            raise EmailAlreadyExists()

        user = User(
            name=name,
            email=email,
            hashed_password=User.hash_password(password),
            role=UserRole.USER.value,
        )
        session.add(user)
        try:
            await session.flush()
        except IntegrityError as err:
            # Lost a race against a concurrent registration
            raise EmailAlreadyExists() from err

        tokens = await AuthService.create_tokens(session, user, ip_address, user_agent)
        logger.info(f"New user registered: {user.id} ({user.email})")
        return user, tokens

    @staticmethod
    async def login(
        session: AsyncSession,
        email: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> tuple[User, TokenPair]:
        """Authenticate with email and password and issue a new session.

        Raises:
            UserNotFound: If no account uses this email
            InvalidCredentialsException: If the password does not match

        """
        user = await AuthService.get_user_by_email(session, email)
        if user is None:
            raise UserNotFound()

        if not user.verify_password(password):
            logger.warning(f"Failed login attempt for user {user.id}")
            raise InvalidCredentialsException()

        tokens = await AuthService.create_tokens(session, user, ip_address, user_agent)
        logger.info(f"User logged in: {user.id}")
        return user, tokens

    @staticmethod
    async def refresh(
        session: AsyncSession,
        refresh_token: str | None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> tuple[User, TokenPair]:
        """Rotate a refresh token and issue a new access token.

        Raises:
            RefreshTokenMissingException: If no token was presented
            RefreshTokenInvalidException: If the token is unknown or no longer ISSUED
            RefreshTokenExpiredOrTamperedException: If the token fails verification;
                the record is revoked and committed before raising

        """
        if not refresh_token:
            raise RefreshTokenMissingException()

        device = await DeviceStore.find_by_token_value(session, refresh_token)
        if device is None:
            raise RefreshTokenInvalidException()
        if device.is_revoked:
            logger.warning(f"Retired refresh token presented for user {device.user_id} (state {device.state})")
            raise RefreshTokenInvalidException()

        try:
            claims = verify_token(TokenKind.REFRESH, refresh_token)
            if claims.user_id != device.user_id:
                raise InvalidTokenException(detail="Token subject mismatch")
        except InvalidTokenException as err:
            logger.warning(f"Refresh token for user {device.user_id} failed verification: {err.detail}")
            await DeviceStore.revoke(session, refresh_token)
            await session.commit()
            raise RefreshTokenExpiredOrTamperedException() from err

        user = await session.get(User, device.user_id)
        if user is None:
            raise RefreshTokenInvalidException()

        tokens = AuthService.mint_token_pair(user.id)
        await DeviceStore.revoke_and_replace(
            session, refresh_token, user.id, tokens.refresh_token, ip_address, user_agent
        )
        logger.info(f"Refresh token rotated for user {user.id}")
        return user, tokens

    @staticmethod
    async def logout(session: AsyncSession, refresh_token: str | None) -> bool:
        """Revoke the presented refresh token.

        A missing token counts as already logged out. Returns True only when
        this call revoked a record.
        """
        if not refresh_token:
            return False

        revoked = await DeviceStore.revoke(session, refresh_token)
        if revoked:
            logger.info("Refresh token revoked on logout")
        return revoked

    @staticmethod
    async def list_devices(session: AsyncSession, user_id: int) -> list[UserDevice]:
        return await DeviceStore.list_active_for_user(session, user_id)

    @staticmethod
    async def request_password_reset(session: AsyncSession, mailer: Mailer, email: str) -> bool:
        """Mail a single-use reset link. Unknown emails and mail failures return False."""
        user = await AuthService.get_user_by_email(session, email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return False

        jti = uuid4().hex
        token = issue_token(TokenKind.RESET, user.id, jti=jti)
        session.add(PasswordResetToken(user_id=user.id, jti=jti))
        await session.flush()

        reset_link = f"{settings.frontend_url}/reset-password?token={token}"
        minutes = settings.reset_token_expire_minutes
        try:
            await mailer.send(
                to=user.email,
                subject="Reset your password",
                html=(
                    f'<p>Click <a href="{reset_link}">here</a> to reset your password. '
                    f"Link expires in {minutes} minutes.</p>"
                ),
            )
        except Exception:
            logger.exception(f"Failed to send password reset mail to user {user.id}")
            return False

        return True

    @staticmethod
    async def confirm_password_reset(session: AsyncSession, token: str, new_password: str) -> bool:
        """Set a new password with a reset token.

        The token is consumed on first use and every active session of the
        user is revoked. Any failure returns False.
        """
        try:
            claims = verify_token(TokenKind.RESET, token)
        except InvalidTokenException as err:
            logger.info(f"Rejected password reset token: {err.detail}")
            return False

        consume = (
            update(PasswordResetToken)
            .where(
                PasswordResetToken.jti == claims.jti,
                PasswordResetToken.user_id == claims.user_id,
                PasswordResetToken.used_at.is_(None),
            )
            .values(used_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(consume)
        if result.rowcount != 1:
            logger.warning(f"Password reset token reused or unknown for user {claims.user_id}")
            return False

        user = await session.get(User, claims.user_id)
        if user is None:
            return False

        user.hashed_password = User.hash_password(new_password)
        revoked = await DeviceStore.revoke_all_for_user(session, user.id)
        logger.info(f"Password reset for user {user.id}, {revoked} session(s) revoked")
        return True
