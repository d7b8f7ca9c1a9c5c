"""
Pydantic schemas for the catalog API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

NAME_MAX_LENGTH = 60
DESCRIPTION_MAX_LENGTH = 500

# Friendly messages keyed by wire field name and error kind; anything not
# listed falls back to pydantic's own message.
FIELD_MESSAGES: Dict[str, Dict[str, str]] = {
    "name": {
        "required": "Please provide a name for this item",
        "string_too_long": f"Name cannot be more than {NAME_MAX_LENGTH} characters",
    },
    "description": {
        "required": "Please provide a description for this item",
        "string_too_long": (
            f"Description cannot be more than {DESCRIPTION_MAX_LENGTH} characters"
        ),
    },
    "price": {
        "required": "Please provide a price for this item",
        "greater_than_equal": "Price must be a positive number",
    },
    "category": {
        "required": "Please specify a category for this item",
    },
}

_REQUIRED_KINDS = {"missing", "required"}


class _ItemFields(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    @field_validator("name", "category", mode="before", check_fields=False)
    @classmethod
    def _trim(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator(
        "name", "description", "price", "category",
        mode="before",
        check_fields=False,
    )
    @classmethod
    def _present(cls, value: Any) -> Any:
        # Explicit nulls and blank strings count as missing.
        if value is None or (isinstance(value, str) and not value.strip()):
            raise PydanticCustomError("required", "Field required")
        return value


class ItemCreate(_ItemFields):
    name: str = Field(..., max_length=NAME_MAX_LENGTH)
    description: str = Field(..., max_length=DESCRIPTION_MAX_LENGTH)
    price: float = Field(..., ge=0)
    category: str
    in_stock: bool = True

    @field_validator("in_stock", mode="before")
    @classmethod
    def _stock_default(cls, value: Any) -> Any:
        # null falls back to the default, same as an absent field.
        return True if value is None else value


class ItemUpdate(_ItemFields):
    """Partial update; only the fields present in the body are validated."""

    name: Optional[str] = Field(None, max_length=NAME_MAX_LENGTH)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX_LENGTH)
    price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = None
    in_stock: Optional[bool] = None

    def changes(self) -> Dict[str, Any]:
        changes = self.model_dump(exclude_unset=True)
        # A null stock flag leaves the stored value alone.
        if changes.get("in_stock", False) is None:
            del changes["in_stock"]
        return changes


def validation_errors(exc: ValidationError) -> Dict[str, str]:
    """Flatten a pydantic error into ``{field: message}``, first error per field."""
    errors: Dict[str, str] = {}
    for error in exc.errors():
        field = str(error["loc"][-1]) if error["loc"] else "body"
        if field in errors:
            continue
        kind = "required" if error["type"] in _REQUIRED_KINDS else error["type"]
        errors[field] = FIELD_MESSAGES.get(field, {}).get(kind, error["msg"])
    return errors


class ItemOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., alias="_id")
    name: str
    description: str
    price: float
    category: str
    in_stock: bool
    created_at: datetime
    updated_at: datetime


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class ItemResponse(BaseModel):
    success: bool = True
    data: ItemOut


class ItemListResponse(BaseModel):
    success: bool = True
    data: list[ItemOut]
    pagination: Pagination


class DeleteResponse(BaseModel):
    success: bool = True
    data: dict = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    validationErrors: Optional[Dict[str, str]] = None
