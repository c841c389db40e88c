# homeschool/utils/responses.py
"""Success envelope helpers."""
from typing import Any, Dict, Optional
from pydantic import BaseModel


def serialize(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, list):
        return [serialize(item) for item in data]
    return data


def success_response(data: Any = None, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    body = {"success": True, "data": serialize(data)}
    if meta is not None:
        body["meta"] = meta
    return body


def message_response(message: str, **extra: Any) -> Dict[str, Any]:
    return success_response({"message": message, **extra})
