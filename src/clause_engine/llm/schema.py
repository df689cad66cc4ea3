"""Decision schema returned by the model and validated before use."""

from __future__ import annotations

import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from clause_engine.errors import MalformedResponseError


class DecisionStatus(str, Enum):
    APPROVED = "Approved"
    REJECTED = "Rejected"
    APPROVED_PARTIAL = "Approved (Partial)"
    MORE_INFORMATION_REQUIRED = "More Information Required"


ZERO_AMOUNT_STATUSES = frozenset(
    {DecisionStatus.REJECTED, DecisionStatus.MORE_INFORMATION_REQUIRED}
)


class Clause(BaseModel):
    """A policy passage quoted in support of a decision."""

    model_config = ConfigDict(frozen=True)

    clause_text: str
    reasoning: str


class Decision(BaseModel):
    """Structured verdict for one query.

    `amount_payable` is always a finite, non-negative float: absent, null,
    non-numeric, non-finite and negative values become `0.0`. A rejection or
    a request for more information must carry a zero amount; a reply that
    violates this is refused rather than clamped.
    """

    model_config = ConfigDict(frozen=True)

    decision: DecisionStatus
    amount_payable: float = 0.0
    justification: str
    clauses: list[Clause]

    @field_validator("amount_payable", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> float:
        if isinstance(value, bool) or value is None:
            return 0.0
        try:
            amount = float(value)
        except (TypeError, ValueError):
            return 0.0
        if not math.isfinite(amount) or amount < 0:
            return 0.0
        return amount

    @model_validator(mode="after")
    def _zero_amount_when_not_paid(self) -> "Decision":
        if self.decision in ZERO_AMOUNT_STATUSES and self.amount_payable != 0:
            raise ValueError(
                f"amount_payable must be 0 when decision is '{self.decision.value}', "
                f"got {self.amount_payable}"
            )
        return self


def parse_decision(raw_text: str) -> Decision:
    """Validate the model's JSON text as a `Decision`.

    Raises:
        MalformedResponseError: the text is not JSON or breaks the schema.
    """

    try:
        return Decision.model_validate_json(raw_text)
    except ValidationError as exc:
        raise MalformedResponseError(
            f"Model reply is not a valid decision: {exc.error_count()} error(s); "
            f"{exc.errors(include_url=False)[0]['msg']}",
            raw_text=raw_text,
        ) from exc
