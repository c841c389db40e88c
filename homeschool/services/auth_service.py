# homeschool/services/auth_service.py
"""Registration, login sessions and one-time tokens."""
from datetime import timedelta
from typing import Optional, Tuple
from uuid import UUID, uuid4
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import (
    DuplicateEmailError, ForbiddenError, InvalidCredentialsError,
    TokenExpiredError, UnauthorizedError, ValidationError,
)
from ..core.security import (
    ACCESS_TOKEN, REFRESH_TOKEN, create_access_token, create_refresh_token,
    decode_token, generate_opaque_token, hash_password, hash_token, verify_password,
)
from ..models.base import utc_now
from ..models.teacher import AuthToken, Teacher, TokenPurpose
from ..schemas.auth_schemas import RegisterRequest, TokenPair

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_email(self, email: str) -> Optional[Teacher]:
        stmt = select(Teacher).where(Teacher.email == email.strip().lower())
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def register(self, data: RegisterRequest, user_agent: Optional[str] = None) -> Tuple[Teacher, TokenPair, str]:
        """Create the account, open a session and issue an email verification token"""
        email = data.email.strip().lower()
        if await self.get_by_email(email):
            raise DuplicateEmailError(email)

        teacher = Teacher(
            email=email,
            password_hash=hash_password(data.password),
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            phone=data.phone,
            timezone=data.timezone,
        )
        self.db.add(teacher)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise DuplicateEmailError(email)

        verification = self._one_time_token(teacher, TokenPurpose.EMAIL_VERIFICATION, settings.email_verification_expire_seconds)
        tokens = self._open_session(teacher, user_agent)
        teacher.last_login_at = utc_now()
        await self.db.commit()
        await self.db.refresh(teacher)
        logger.info(f"Registered teacher {teacher.id}")
        return teacher, tokens, verification

    async def login(self, email: str, password: str, user_agent: Optional[str] = None) -> Tuple[Teacher, TokenPair]:
        teacher = await self.get_by_email(email)
        if teacher is None or not verify_password(password, teacher.password_hash):
            logger.info("Failed login attempt")
            raise InvalidCredentialsError()
        if not teacher.is_active:
            raise ForbiddenError("This account has been deactivated")

        tokens = self._open_session(teacher, user_agent)
        teacher.last_login_at = utc_now()
        await self.db.commit()
        await self.db.refresh(teacher)
        return teacher, tokens

    async def refresh(self, refresh_token: str) -> Tuple[Teacher, TokenPair]:
        """Rotate a refresh token: the presented one is revoked, a new pair issued"""
        payload = decode_token(refresh_token, REFRESH_TOKEN)
        session = await self._get_token(hash_token(refresh_token), TokenPurpose.REFRESH)
        if session is None or str(session.id) != payload["sid"] or session.revoked_at is not None:
            raise UnauthorizedError("Refresh token has been revoked")
        if session.expires_at <= utc_now():
            raise TokenExpiredError("Refresh token has expired")

        teacher = await self.db.get(Teacher, session.teacher_id)
        if teacher is None or not teacher.is_active:
            raise UnauthorizedError("Account is not active")

        session.revoked_at = utc_now()
        tokens = self._open_session(teacher, session.user_agent)
        await self.db.commit()
        return teacher, tokens

    async def logout(self, teacher: Teacher, session_id: UUID, refresh_token: Optional[str] = None):
        """Revoke the current session and, if given, the presented refresh token"""
        stmt = update(AuthToken).where(
            AuthToken.teacher_id == teacher.id,
            AuthToken.purpose == TokenPurpose.REFRESH,
            AuthToken.revoked_at.is_(None),
        )
        if refresh_token:
            stmt = stmt.where((AuthToken.id == session_id) | (AuthToken.token_hash == hash_token(refresh_token)))
        else:
            stmt = stmt.where(AuthToken.id == session_id)
        await self.db.execute(stmt.values(revoked_at=utc_now()))
        await self.db.commit()

    async def authenticate(self, access_token: str) -> Tuple[Teacher, UUID]:
        """Resolve a bearer token to its teacher and session id"""
        payload = decode_token(access_token, ACCESS_TOKEN)
        try:
            teacher_id = UUID(payload["sub"])
            session_id = UUID(payload["sid"])
        except ValueError:
            raise UnauthorizedError("Invalid token")

        session = await self.db.get(AuthToken, session_id)
        if session is None or session.teacher_id != teacher_id or session.revoked_at is not None:
            raise UnauthorizedError("Session has been revoked")

        teacher = await self.db.get(Teacher, teacher_id)
        if teacher is None or not teacher.is_active:
            raise UnauthorizedError("Account is not active")
        return teacher, session_id

    async def request_password_reset(self, email: str) -> Optional[Tuple[Teacher, str]]:
        """Issue a reset token; unknown emails return None without any signal"""
        teacher = await self.get_by_email(email)
        if teacher is None or not teacher.is_active:
            return None
        token = self._one_time_token(teacher, TokenPurpose.PASSWORD_RESET, settings.password_reset_expire_seconds)
        await self.db.commit()
        return teacher, token

    async def reset_password(self, token: str, new_password: str) -> Teacher:
        record = await self._consume(token, TokenPurpose.PASSWORD_RESET)
        teacher = await self.db.get(Teacher, record.teacher_id)
        teacher.password_hash = hash_password(new_password)
        await self._revoke_sessions(teacher.id)
        await self.db.commit()
        logger.info(f"Password reset for teacher {teacher.id}")
        return teacher

    async def verify_email(self, token: str) -> Teacher:
        record = await self._consume(token, TokenPurpose.EMAIL_VERIFICATION)
        teacher = await self.db.get(Teacher, record.teacher_id)
        teacher.email_verified = True
        await self.db.commit()
        await self.db.refresh(teacher)
        return teacher

    async def new_verification_token(self, teacher: Teacher) -> str:
        if teacher.email_verified:
            raise ValidationError("Email is already verified", field="email")
        token = self._one_time_token(teacher, TokenPurpose.EMAIL_VERIFICATION, settings.email_verification_expire_seconds)
        await self.db.commit()
        return token

    async def change_password(self, teacher: Teacher, current_password: str, new_password: str, keep_session: UUID):
        if not verify_password(current_password, teacher.password_hash):
            raise InvalidCredentialsError()
        teacher.password_hash = hash_password(new_password)
        await self._revoke_sessions(teacher.id, keep=keep_session)
        await self.db.commit()

    async def deactivate(self, teacher: Teacher):
        teacher.is_active = False
        await self._revoke_sessions(teacher.id)
        await self.db.commit()

    def _open_session(self, teacher: Teacher, user_agent: Optional[str]) -> TokenPair:
        session_id = uuid4()
        refresh_token = create_refresh_token(teacher.id, session_id)
        self.db.add(AuthToken(
            id=session_id,
            teacher_id=teacher.id,
            purpose=TokenPurpose.REFRESH,
            token_hash=hash_token(refresh_token),
            expires_at=utc_now() + timedelta(seconds=settings.refresh_token_expire_seconds),
            user_agent=(user_agent or "")[:255] or None,
        ))
        return TokenPair(
            access_token=create_access_token(teacher.id, session_id),
            refresh_token=refresh_token,
            expires_in=settings.access_token_expire_seconds,
            refresh_expires_in=settings.refresh_token_expire_seconds,
        )

    def _one_time_token(self, teacher: Teacher, purpose: TokenPurpose, expires_in: int) -> str:
        token = generate_opaque_token()
        self.db.add(AuthToken(
            teacher_id=teacher.id,
            purpose=purpose,
            token_hash=hash_token(token),
            expires_at=utc_now() + timedelta(seconds=expires_in),
        ))
        return token

    async def _get_token(self, token_hash: str, purpose: TokenPurpose) -> Optional[AuthToken]:
        stmt = select(AuthToken).where(AuthToken.token_hash == token_hash, AuthToken.purpose == purpose)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def _consume(self, token: str, purpose: TokenPurpose) -> AuthToken:
        record = await self._get_token(hash_token(token), purpose)
        if record is None or record.used_at is not None:
            raise ValidationError("Token is invalid or has already been used", field="token")
        if record.expires_at <= utc_now():
            raise TokenExpiredError()
        record.used_at = utc_now()
        return record

    async def _revoke_sessions(self, teacher_id: UUID, keep: Optional[UUID] = None):
        stmt = update(AuthToken).where(
            AuthToken.teacher_id == teacher_id,
            AuthToken.purpose == TokenPurpose.REFRESH,
            AuthToken.revoked_at.is_(None),
        )
        if keep is not None:
            stmt = stmt.where(AuthToken.id != keep)
        await self.db.execute(stmt.values(revoked_at=utc_now()))
