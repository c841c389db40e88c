# homeschool/services/teacher_service.py
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from .base_service import BaseService
from .file_storage import delete_file
from ..models.teacher import Teacher


class TeacherService(BaseService[Teacher]):
    """Profile operations on the signed-in teacher's own account."""

    resource_name = "Teacher"

    def __init__(self, db: AsyncSession):
        super().__init__(Teacher, db)

    async def update_profile(self, teacher: Teacher, data: Dict[str, Any]) -> Teacher:
        for key in ("first_name", "last_name"):
            if data.get(key):
                data[key] = data[key].strip()
        return await self.update(teacher, data)

    async def set_profile_image(self, teacher: Teacher, url: str) -> Teacher:
        previous = teacher.profile_image_url
        teacher = await self.update(teacher, {"profile_image_url": url})
        delete_file(previous)
        return teacher
