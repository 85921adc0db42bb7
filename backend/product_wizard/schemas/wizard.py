"""Schemas for the product wizard step pages."""

from pydantic import BaseModel

from product_wizard.schemas.product import ProductDraft


class FieldError(BaseModel):
    field: str
    message: str
    code: str


class WizardStepView(BaseModel):
    """Everything a client needs to render one wizard step."""
    step: str
    steps: list[str]
    is_last_step: bool
    product: ProductDraft
    errors: list[FieldError] = []
