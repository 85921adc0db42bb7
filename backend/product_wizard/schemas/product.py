"""Pydantic schemas for products.

ProductDraft has all-optional fields so a wizard step can submit a partial
product. ProductComplete is the full-record rule set: every field present
and not blank. The wizard validates the whole draft against it and keeps
only the errors that belong to the current step.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic_core import PydanticCustomError


class ProductDraft(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str | None = None
    price: str | None = None
    category: str | None = None


class ProductComplete(ProductDraft):
    """name, price and category are all required to persist a product."""
    name: str
    price: str
    category: str

    @field_validator("name", "price", "category", mode="before")
    @classmethod
    def _present(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            raise PydanticCustomError("blank", "can't be blank")
        return value


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    price: str
    category: str
    created_at: datetime
    updated_at: datetime
