# app/api/schemas/common.py
from typing import TypeVar, Generic, Optional
from pydantic import BaseModel

T = TypeVar('T')


class APIResponse(BaseModel, Generic[T]):
    """Uniform success envelope: {success, message?, data?}"""
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
