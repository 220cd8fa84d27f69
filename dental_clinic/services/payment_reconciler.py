# FILE: dental_clinic/services/payment_reconciler.py
"""
Match a visit's recorded payments to the payment outcome staff declare when
the visit is completed.

Planning is pure (no session access) so every outcome can be checked in
isolation; `apply_payment_plan` then writes the plan. The reconciler never
deletes a payment and never lowers an amount already paid.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from dental_clinic.core.config import settings
from dental_clinic.models.payment import (
    Payment,
    METHOD_CASH,
    METHOD_HMO,
    METHOD_MAYA,
    STATUS_PAID,
    PENDING_STATUSES,
)
from dental_clinic.services.errors import ValidationError

logger = logging.getLogger(__name__)

OUTCOME_PAID = "paid"
OUTCOME_HMO = "hmo_fully_covered"
OUTCOME_PARTIAL = "partial"
OUTCOME_UNPAID = "unpaid"

OUTCOMES = (OUTCOME_PAID, OUTCOME_HMO, OUTCOME_PARTIAL, OUTCOME_UNPAID)

MAYA_TO_CASH = "maya_to_cash"

ZERO = Decimal("0")
CENT = Decimal("0.01")


def _money(v) -> Decimal:
    if v is None:
        return ZERO
    return Decimal(str(v)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class PaymentDraft:
    amount: Decimal
    method: str
    ref_prefix: str  # CASH / HMO


@dataclass
class PaymentPlan:
    outcome: str
    creates: List[PaymentDraft] = field(default_factory=list)
    conversions: List[Payment] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.creates and not self.conversions


def total_paid(payments: Iterable[Payment]) -> Decimal:
    return sum((_money(p.amount_paid) for p in payments), ZERO)


def appointment_payment_status(outcome: str) -> str:
    """Collapse the declared outcome into the appointment's paid/unpaid flag."""
    if outcome in (OUTCOME_PAID, OUTCOME_HMO, OUTCOME_PARTIAL):
        return "paid"
    return "unpaid"


def _pending_maya(payments: Iterable[Payment]) -> Optional[Payment]:
    for p in payments:
        if p.method == METHOD_MAYA and p.status in PENDING_STATUSES:
            return p
    return None


def plan_payments(
    *,
    outcome: str,
    price,
    payments: List[Payment],
    onsite_amount=None,
    method_change: Optional[str] = None,
) -> PaymentPlan:
    if outcome not in OUTCOMES:
        raise ValidationError(f"Unknown payment status: {outcome}")

    price = _money(price)
    plan = PaymentPlan(outcome=outcome)

    if outcome == OUTCOME_PAID:
        paid = total_paid(payments)
        if paid < price:
            plan.creates.append(PaymentDraft(price - paid, METHOD_CASH, "CASH"))

    elif outcome == OUTCOME_HMO:
        # HMO covers the full price regardless of earlier payments
        plan.creates.append(PaymentDraft(price, METHOD_HMO, "HMO"))

    elif outcome == OUTCOME_PARTIAL:
        amount = _money(onsite_amount)
        if amount <= 0:
            raise ValidationError("onsite_payment_amount is required for partial payments")
        plan.creates.append(PaymentDraft(amount, METHOD_CASH, "CASH"))

    elif method_change == MAYA_TO_CASH:
        maya = _pending_maya(payments)
        if maya is not None:
            plan.conversions.append(maya)

    return plan


def apply_payment_plan(
    db: Session,
    plan: PaymentPlan,
    *,
    visit_id: int,
    user_id: Optional[int],
    now: datetime,
) -> List[Payment]:
    """Write the plan; returns the created and converted payments."""
    touched: List[Payment] = []
    stamp = int(now.timestamp())

    for draft in plan.creates:
        p = Payment(
            patient_visit_id=visit_id,
            currency=settings.CURRENCY,
            amount_due=draft.amount,
            amount_paid=draft.amount,
            method=draft.method,
            status=STATUS_PAID,
            reference_no=f"{draft.ref_prefix}-{visit_id}-{stamp}",
            created_by=user_id,
            paid_at=now,
        )
        db.add(p)
        touched.append(p)

    for p in plan.conversions:
        due = _money(p.amount_due)
        p.method = METHOD_CASH
        p.status = STATUS_PAID
        p.amount_paid = max(due, _money(p.amount_paid))
        p.paid_at = now
        touched.append(p)

    if touched:
        logger.info(
            "Visit %s payments reconciled outcome=%s created=%d converted=%d",
            visit_id, plan.outcome, len(plan.creates), len(plan.conversions),
        )
    return touched
