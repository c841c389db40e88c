"""Registration, login, token refresh and account recovery."""
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from ..core.auth import AuthContext, get_auth_context, get_current_teacher
from ..core.database import get_db
from ..core.rate_limiter import rate_limit
from ..models.teacher import Teacher
from ..schemas.auth_schemas import (
    AuthResult, ForgotPasswordRequest, LoginRequest, LogoutRequest, RefreshRequest,
    RegisterRequest, ResetPasswordRequest, TeacherOut, VerifyEmailRequest,
)
from ..services.auth_service import AuthService
from ..services.email_service import password_reset_email, verification_email
from ..tasks import queue_email
from ..utils.responses import message_response, success_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])

RESET_REQUESTED = "If an account exists for that email, a password reset link has been sent"


def _auth_result(teacher: Teacher, tokens) -> AuthResult:
    return AuthResult(**tokens.model_dump(), teacher=TeacherOut.model_validate(teacher))


@router.post("/register", status_code=status.HTTP_201_CREATED, dependencies=[Depends(rate_limit("auth"))])
async def register(
    data: RegisterRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    """Create a teacher account and sign it in"""
    teacher, tokens, verification = await AuthService(db).register(data, request.headers.get("user-agent"))
    subject, body = verification_email(teacher.first_name, verification)
    queue_email(background_tasks, [teacher.email], subject, body)
    return success_response(_auth_result(teacher, tokens))


@router.post("/login", dependencies=[Depends(rate_limit("auth"))])
async def login(data: LoginRequest, request: Request, db: AsyncSession = Depends(get_db)):
    teacher, tokens = await AuthService(db).login(data.email, data.password, request.headers.get("user-agent"))
    return success_response(_auth_result(teacher, tokens))


@router.post("/refresh", dependencies=[Depends(rate_limit("auth"))])
async def refresh(data: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Exchange a refresh token for a new token pair; the old refresh token stops working"""
    teacher, tokens = await AuthService(db).refresh(data.refresh_token)
    return success_response(_auth_result(teacher, tokens))


@router.post("/logout", dependencies=[Depends(rate_limit("standard"))])
async def logout(
    data: Optional[LogoutRequest] = None,
    context: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    await AuthService(db).logout(context.teacher, context.session_id, data.refresh_token if data else None)
    return message_response("Logged out")


@router.post("/forgot-password", dependencies=[Depends(rate_limit("password_reset"))])
async def forgot_password(
    data: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    """Always answers the same way so account existence is not revealed"""
    issued = await AuthService(db).request_password_reset(data.email)
    if issued:
        teacher, token = issued
        subject, body = password_reset_email(teacher.first_name, token)
        queue_email(background_tasks, [teacher.email], subject, body)
    return message_response(RESET_REQUESTED)


@router.post("/reset-password", dependencies=[Depends(rate_limit("password_reset"))])
async def reset_password(data: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    await AuthService(db).reset_password(data.token, data.new_password)
    return message_response("Password has been reset, please sign in again")


@router.post("/verify-email", dependencies=[Depends(rate_limit("standard"))])
async def verify_email(data: VerifyEmailRequest, db: AsyncSession = Depends(get_db)):
    teacher = await AuthService(db).verify_email(data.token)
    return success_response(TeacherOut.model_validate(teacher))


@router.post("/resend-verification", dependencies=[Depends(rate_limit("password_reset"))])
async def resend_verification(
    background_tasks: BackgroundTasks,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    token = await AuthService(db).new_verification_token(teacher)
    subject, body = verification_email(teacher.first_name, token)
    queue_email(background_tasks, [teacher.email], subject, body)
    return message_response("Verification email sent")
