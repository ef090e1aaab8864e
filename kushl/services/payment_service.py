"""Payment records and the platform commission tiers."""

from __future__ import annotations

import logging
import math
from typing import Optional

from kushl.core.utils import generate_id, iso_from_ms, now_ms
from kushl.domain.constants import PAYMENTS_KEY, PLATFORM_CHARGES_TIERS, CommissionTier, PaymentStatus
from kushl.repositories.collection import JsonCollection

logger = logging.getLogger(__name__)

payments = JsonCollection(PAYMENTS_KEY)


def commission_tier(amount: float) -> CommissionTier:
    """Tier whose inclusive range holds ``amount``; amounts outside every range use the last tier."""
    for tier in PLATFORM_CHARGES_TIERS:
        if tier.min_amount <= amount <= tier.max_amount:
            return tier
    return PLATFORM_CHARGES_TIERS[-1]


def get_commission_percentage(amount: float) -> int:
    return commission_tier(amount).percentage


def calculate_platform_commission(amount: float) -> int:
    # half-up, not banker's rounding
    return math.floor(amount * commission_tier(amount).percentage / 100 + 0.5)


def calculate_student_earnings(amount: float) -> float:
    return amount - calculate_platform_commission(amount)


def get_payments() -> list[dict]:
    return payments.all()


def get_payments_by_user_id(user_id: str) -> list[dict]:
    """Payments where the user is either the paid student or the paying employer."""
    return payments.filter(lambda p: p.get("studentId") == user_id or p.get("employerId") == user_id)


def add_payment(payment: dict) -> bool:
    try:
        payments.append(payment)
    except (OSError, TypeError, ValueError) as exc:
        logger.error("Error adding payment: %s", exc)
        return False
    return True


def create_payment(
    task_id: str,
    student_id: str,
    employer_id: str,
    amount: float,
    status: str = PaymentStatus.PENDING.value,
    message: str | None = None,
) -> Optional[dict]:
    try:
        status_value = PaymentStatus(status).value
    except ValueError:
        logger.error("Unknown payment status: %s", status)
        return None
    now = now_ms()
    payment = {
        "id": generate_id(),
        "taskId": task_id,
        "amount": amount,
        "platformCommission": calculate_platform_commission(amount),
        "paymentDate": "",
        "status": status_value,
        "studentId": student_id,
        "employerId": employer_id,
        "createdAt": now,
        "updatedAt": now,
    }
    if message:
        payment["message"] = message
    if not add_payment(payment):
        return None
    return payment


def update_payment_status(payment_id: str, status: str) -> bool:
    try:
        value = PaymentStatus(status).value
    except ValueError:
        logger.error("Unknown payment status: %s", status)
        return False

    def _apply(payment: dict) -> None:
        now = now_ms()
        payment["status"] = value
        payment["updatedAt"] = now
        if value == PaymentStatus.COMPLETED.value:
            payment["paymentDate"] = iso_from_ms(now)

    return payments.update(payment_id, _apply) is not None
