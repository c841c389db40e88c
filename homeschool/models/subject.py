# homeschool/models/subject.py
from sqlalchemy import Column, String, Boolean, Text, ForeignKey, Uuid
from .base import Base


class Subject(Base):
    __tablename__ = "subjects"

    teacher_id = Column(Uuid, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(7), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
