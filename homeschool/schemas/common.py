"""Shared field types and validators."""
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID
from pydantic import AfterValidator, BaseModel, Field

GRADE_LEVELS = ("PK", "K", "1", "2", "3", "4", "5", "6", "7", "8", "9", "10", "11", "12")


def _grade_level(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    normalized = value.strip().upper()
    if normalized not in GRADE_LEVELS:
        raise ValueError(f"grade_level must be one of {', '.join(GRADE_LEVELS)}")
    return normalized


GradeLevel = Annotated[str, AfterValidator(_grade_level)]
HexColor = Annotated[str, Field(pattern=r"^#[0-9A-Fa-f]{6}$", description="Hex colour, e.g. #4A90E2")]


class ORMModel(BaseModel):
    model_config = {"from_attributes": True}


class TimestampedOut(ORMModel):
    id: UUID
    created_at: datetime
    updated_at: datetime
