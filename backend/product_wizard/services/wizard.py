"""Three-step product creation with a session-backed draft.

Steps:
  add_name      → name
  add_price     → price
  add_category  → category   (last step: persists the Product)

Session payload:
  {"product_wizard": {"product": {"name": "...", "price": "...", "category": "..."}}}

The controller never reads or writes a framework session. Every operation
takes the session payload as a plain dict and hands back the payload the
caller should store; the dict passed in is never mutated.
"""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from product_wizard.middleware.exceptions import ResourceNotFoundError
from product_wizard.models.product import Product
from product_wizard.schemas.product import ProductComplete, ProductDraft
from product_wizard.schemas.wizard import FieldError, WizardStepView
from product_wizard.services.draft import DraftAggregator, WizardDraft

logger = logging.getLogger(__name__)

STEPS = ("add_name", "add_price", "add_category")

STEP_FIELDS: dict[str, list[str]] = {
    "add_name": ["name"],
    "add_price": ["price"],
    "add_category": ["category"],
}

SESSION_NAMESPACE = "product_wizard"
DRAFT_KEY = "product"


@dataclass
class WizardOutcome:
    """Result of a step submission.

    Exactly one of `view` (re-render the step), `record` (wizard complete)
    or `next_step` (advance) describes what happens next. `session` is the
    payload to store in every case.
    """
    session: dict
    step: str
    next_step: str | None = None
    record: Product | None = None
    view: WizardStepView | None = None

    @property
    def complete(self) -> bool:
        return self.record is not None


class ProductWizard:
    def __init__(
        self,
        aggregator: DraftAggregator | None = None,
        namespace: str = SESSION_NAMESPACE,
    ):
        self.aggregator = aggregator or DraftAggregator(
            Product, ProductComplete, STEPS, STEP_FIELDS
        )
        self.namespace = namespace

    @property
    def steps(self) -> tuple[str, ...]:
        return self.aggregator.steps

    def require_step(self, step: str) -> None:
        if step not in self.steps:
            raise ResourceNotFoundError("Wizard step", step)

    def next_step(self, step: str) -> str:
        return self.steps[self.steps.index(step) + 1]

    # ── Operations ───────────────────────────────────────────

    def start(self, session: dict | None) -> tuple[dict, str]:
        """Reset the draft and return (session, first step)."""
        new_session = dict(session or {})
        new_session[self.namespace] = {DRAFT_KEY: self.aggregator.empty_values()}
        return new_session, self.steps[0]

    def show(self, step: str, session: dict | None) -> WizardStepView:
        self.require_step(step)
        return self._view(self.load_draft(step, session))

    async def update(
        self,
        db: AsyncSession,
        step: str,
        submitted: dict[str, Any] | None,
        session: dict | None,
    ) -> WizardOutcome:
        self.require_step(step)
        received = dict(session or {})

        draft = self.load_draft(step, received)
        draft.values = self.aggregator.merge(draft.values, submitted)

        errors = self.aggregator.validate(step, draft.values)
        if errors:
            logger.warning(
                f"Wizard step {step} rejected: {[e.field for e in errors]}",
                extra={"step": step},
            )
            return WizardOutcome(session=received, step=step, view=self._view(draft, errors))

        if not self.aggregator.is_last_step(step):
            logger.debug(f"Wizard step {step} accepted")
            return WizardOutcome(
                session=self._store_draft(received, draft),
                step=step,
                next_step=self.next_step(step),
            )

        # Steps can be submitted out of order; never commit an incomplete record
        pending = self.aggregator.first_invalid_step(draft.values)
        if pending is not None:
            logger.warning(
                f"Wizard finished with step {pending} incomplete",
                extra={"step": step},
            )
            return WizardOutcome(
                session=self._store_draft(received, draft),
                step=step,
                next_step=pending,
            )

        result = await self.aggregator.commit(db, step, draft.values)
        if not result.ok:
            return WizardOutcome(
                session=received, step=step, view=self._view(draft, result.errors)
            )

        logger.info(
            f"Product wizard complete: {result.record.id}",
            extra={"product_id": result.record.id},
        )
        return WizardOutcome(
            session=self._clear_draft(received),
            step=step,
            record=result.record,
        )

    # ── Session payload ──────────────────────────────────────

    def load_draft(self, step: str, session: dict | None) -> WizardDraft:
        """Read the draft from the payload; anything missing or malformed reads as empty."""
        container = (session or {}).get(self.namespace)
        raw = container.get(DRAFT_KEY) if isinstance(container, dict) else None
        return self.aggregator.draft(raw if isinstance(raw, dict) else None, step=step)

    def _store_draft(self, session: dict, draft: WizardDraft) -> dict:
        new_session = dict(session)
        container = session.get(self.namespace)
        container = dict(container) if isinstance(container, dict) else {}
        container[DRAFT_KEY] = self.aggregator.extract_persistable_fields(draft.values)
        new_session[self.namespace] = container
        return new_session

    def _clear_draft(self, session: dict) -> dict:
        new_session = dict(session)
        new_session.pop(self.namespace, None)
        return new_session

    def _view(self, draft: WizardDraft, errors: list[FieldError] | None = None) -> WizardStepView:
        return WizardStepView(
            step=draft.step,
            steps=list(self.steps),
            is_last_step=self.aggregator.is_last_step(draft.step),
            product=ProductDraft(**draft.values),
            errors=errors or [],
        )
