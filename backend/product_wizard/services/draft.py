"""Draft aggregation for records built across several wizard steps.

A WizardDraft holds the record-shaped values collected so far plus the
wizard's own bookkeeping (current step, step sequence, validation map).
The bookkeeping never becomes part of the record: only keys named by the
complete-record schema are ever merged, validated or persisted.

Validation always runs the full record rule set, then drops every error
whose field is not owned by the current step, so a step never blocks on
fields the user has not reached yet.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from product_wizard.middleware.exceptions import describe_integrity_error
from product_wizard.schemas.wizard import FieldError

logger = logging.getLogger(__name__)


def is_last_step(step: str, steps: Sequence[str]) -> bool:
    return bool(steps) and step == steps[-1]


def filter_step_errors(
    errors: list[FieldError],
    step: str,
    validations: Mapping[str, frozenset[str]],
) -> list[FieldError]:
    """Keep only the errors whose field belongs to `step`.

    A step missing from the map keeps every error.
    """
    allowed = validations.get(step)
    if allowed is None:
        return list(errors)
    return [error for error in errors if error.field in allowed]


@dataclass
class WizardDraft:
    values: dict[str, Any]
    step: str | None = None
    steps: tuple[str, ...] = ()
    validations: Mapping[str, frozenset[str]] = field(default_factory=dict)


@dataclass
class CommitResult:
    record: Any = None
    errors: list[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.record is not None


class DraftAggregator:
    """Binds a draft to its target record type and step validation map.

    Args:
        record_type: ORM class instantiated on commit.
        schema: pydantic model holding the full-record rules. Its fields
            define the persistable attribute set.
        steps: ordered step identifiers.
        validations: step identifier → field names owned by that step.

    Raises:
        ValueError: when the step field sets do not cover the record
            fields exactly once each.
    """

    def __init__(
        self,
        record_type: type,
        schema: type[BaseModel],
        steps: Sequence[str],
        validations: Mapping[str, Sequence[str]],
    ):
        self.record_type = record_type
        self.schema = schema
        self.steps = tuple(steps)
        self.validations = {step: frozenset(names) for step, names in validations.items()}
        self.fields = tuple(schema.model_fields)
        self._check_validation_map(validations)

    def _check_validation_map(self, validations: Mapping[str, Sequence[str]]) -> None:
        unknown = set(validations) - set(self.steps)
        if unknown:
            raise ValueError(f"Validation map names unknown steps: {sorted(unknown)}")

        owned: Counter = Counter()
        for step in self.steps:
            if step not in validations:
                raise ValueError(f"No fields assigned to step {step!r}")
            owned.update(validations[step])

        if owned != Counter(self.fields):
            raise ValueError(
                f"Step fields {dict(owned)} must cover record fields "
                f"{list(self.fields)} exactly once each"
            )

    # ── Draft values ─────────────────────────────────────────

    def empty_values(self) -> dict[str, Any]:
        return {name: "" for name in self.fields}

    def draft(self, values: Mapping[str, Any] | None, step: str | None = None) -> WizardDraft:
        """Wrap record values in a draft, filling absent fields with blanks."""
        return WizardDraft(
            values={**self.empty_values(), **self.extract_persistable_fields(values)},
            step=step,
            steps=self.steps,
            validations=self.validations,
        )

    def merge(self, values: Mapping[str, Any], submitted: Mapping[str, Any] | None) -> dict[str, Any]:
        """Submitted keys overwrite, everything else is left as it was."""
        merged = dict(values)
        merged.update(self.extract_persistable_fields(submitted))
        return merged

    def extract_persistable_fields(self, raw: Mapping[str, Any] | None) -> dict[str, Any]:
        if not raw:
            return {}
        return {key: value for key, value in raw.items() if key in self.fields}

    # ── Validation ───────────────────────────────────────────

    def validate_all(self, values: Mapping[str, Any]) -> list[FieldError]:
        try:
            self.schema.model_validate(self.extract_persistable_fields(values))
        except ValidationError as exc:
            return [
                FieldError(
                    field=str(error["loc"][0]) if error["loc"] else "__root__",
                    message=error["msg"],
                    code=error["type"],
                )
                for error in exc.errors()
            ]
        return []

    def validate(self, step: str, values: Mapping[str, Any]) -> list[FieldError]:
        return filter_step_errors(self.validate_all(values), step, self.validations)

    def first_invalid_step(self, values: Mapping[str, Any]) -> str | None:
        """Earliest step owning a field that fails the full-record rules."""
        failing = {error.field for error in self.validate_all(values)}
        for step in self.steps:
            if failing & self.validations[step]:
                return step
        return None

    def is_last_step(self, step: str) -> bool:
        return is_last_step(step, self.steps)

    # ── Persistence ──────────────────────────────────────────

    async def commit(self, db: AsyncSession, step: str, values: Mapping[str, Any]) -> CommitResult:
        """Persist a record built from the draft's persistable fields.

        Callers validate the full draft first. The transaction is committed
        here so deferred constraints fail inside this handler too; a
        constraint violation at flush or commit rolls the session back and
        comes back as errors on the fields of `step`.
        """
        record = self.record_type(**self.extract_persistable_fields(values))
        db.add(record)
        try:
            await db.flush()
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            message, error_code = describe_integrity_error(exc)
            logger.warning(
                f"Could not persist {self.record_type.__name__}: {error_code}",
                extra={"step": step, "error_code": error_code},
            )
            owned = self.validations.get(step, frozenset(self.fields))
            errors = [
                FieldError(field=name, message=message, code=error_code)
                for name in self.fields
                if name in owned
            ]
            return CommitResult(errors=filter_step_errors(errors, step, self.validations))

        return CommitResult(record=record)
