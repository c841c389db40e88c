"""The signed-in teacher's own account."""
from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import AuthContext, get_auth_context, get_current_teacher
from ..core.database import get_db
from ..core.rate_limiter import rate_limit
from ..models.teacher import Teacher
from ..schemas.auth_schemas import ChangePasswordRequest, TeacherOut, TeacherUpdate
from ..services.auth_service import AuthService
from ..services.file_storage import save_upload
from ..services.teacher_service import TeacherService
from ..utils.responses import message_response, success_response

router = APIRouter(
    prefix="/api/v1/teachers",
    tags=["Teachers"],
    dependencies=[Depends(rate_limit("standard"))],
)

@router.get("/me")
async def get_me(teacher: Teacher = Depends(get_current_teacher)):
    return success_response(TeacherOut.model_validate(teacher))

@router.put("/me")
async def update_me(
    data: TeacherUpdate,
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    teacher = await TeacherService(db).update_profile(teacher, data.model_dump(exclude_unset=True, exclude_none=True))
    return success_response(TeacherOut.model_validate(teacher))

@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_me(
    context: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Deactivate the account and end every session"""
    await AuthService(db).deactivate(context.teacher)

@router.put("/me/password")
async def change_password(
    data: ChangePasswordRequest,
    context: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Change the password; other sessions are signed out"""
    await AuthService(db).change_password(
        context.teacher, data.current_password, data.new_password, keep_session=context.session_id,
    )
    return message_response("Password updated")

@router.post("/me/profile-image", dependencies=[Depends(rate_limit("upload"))])
async def upload_profile_image(
    file: UploadFile = File(...),
    teacher: Teacher = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db),
):
    stored = await save_upload(file, "profile_images", teacher.id)
    teacher = await TeacherService(db).set_profile_image(teacher, stored.file_url)
    return success_response(TeacherOut.model_validate(teacher))
