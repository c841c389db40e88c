# homeschool/core/auth.py
"""Bearer authentication dependencies."""
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_db
from .exceptions import UnauthorizedError
from ..models.teacher import Teacher
from ..services.auth_service import AuthService

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthContext:
    teacher: Teacher
    session_id: UUID


async def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise UnauthorizedError("Authentication required")

    teacher, session_id = await AuthService(db).authenticate(credentials.credentials)
    return AuthContext(teacher=teacher, session_id=session_id)


async def get_current_teacher(context: AuthContext = Depends(get_auth_context)) -> Teacher:
    return context.teacher
