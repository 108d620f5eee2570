from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

T = TypeVar("T")

_email_adapter = TypeAdapter(EmailStr)

def is_valid_email(value: Optional[str]) -> bool:
    """Syntax check only; no DNS lookups."""
    try:
        _email_adapter.validate_python(value or "")
    except ValidationError:
        return False
    return True

class CamelModel(BaseModel):
    """Base for payloads exposed with camelCase keys."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None

class ErrorResponse(BaseModel):
    success: bool = False
    message: str
