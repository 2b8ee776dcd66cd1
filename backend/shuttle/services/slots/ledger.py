"""
Capacity ledger: per-slot premium / non-premium counters.

Every mutation is a single conditional UPDATE so concurrent handlers cannot both take the last
unit (used < max is re-checked by the database at write time). Callers own the transaction:
nothing here commits, so a reservation can be made atomically with the row that owns it.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from shuttle.core.constants import PREMIUM_PLAN, SLOT_TYPE_PEAK, TIER_NON_PREMIUM, TIER_PREMIUM
from shuttle.core.errors import TransientStoreError
from shuttle.models.slot_capacity import SlotCapacity

logger = logging.getLogger(__name__)


def tier_for_plan(plan_type: str | None) -> str:
    return TIER_PREMIUM if (plan_type or "").lower() == PREMIUM_PLAN else TIER_NON_PREMIUM


def _columns(tier: str):
    if tier == TIER_PREMIUM:
        return SlotCapacity.used_riders_premium, SlotCapacity.max_riders_premium
    if tier == TIER_NON_PREMIUM:
        return SlotCapacity.used_riders_non_premium, SlotCapacity.max_riders_non_premium
    raise ValueError(f"Unknown capacity tier {tier!r}")


def reserve(db: Session, slot_id: str, tier: str) -> bool:
    """Take one unit of `tier` on the slot. False (and no mutation) when the tier is saturated or the slot is missing."""
    used, max_ = _columns(tier)
    try:
        result = db.execute(
            update(SlotCapacity)
            .where(SlotCapacity.slot_id == slot_id, used < max_)
            .values({used: used + 1, SlotCapacity.updated_at: datetime.now(timezone.utc)})
            .execution_options(synchronize_session=False)
        )
    except OperationalError as e:
        db.rollback()
        raise TransientStoreError(f"reserve {slot_id} failed: store unavailable") from e
    ok = result.rowcount == 1
    if not ok:
        logger.debug("reserve: %s tier=%s saturated", slot_id, tier)
    return ok


def release(db: Session, slot_id: str, tier: str) -> bool:
    """
    Give back one unit. Floors at zero: releasing an already-empty tier (double release after an
    expired hold, say) is a no-op and returns False rather than raising.
    """
    used, _ = _columns(tier)
    result = db.execute(
        update(SlotCapacity)
        .where(SlotCapacity.slot_id == slot_id, used > 0)
        .values({used: used - 1, SlotCapacity.updated_at: datetime.now(timezone.utc)})
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.info("release: %s tier=%s already at zero", slot_id, tier)
        return False
    return True


def update_max_non_premium(db: Session, slot_id: str, max_non_premium: int) -> int | None:
    """
    Set a slot's non-premium ceiling. Peak slots stay at 0; otherwise the value is floored at 0
    and at the slot's current usage. Returns the stored value, or None for an unknown slot.
    """
    slot = db.query(SlotCapacity).filter(SlotCapacity.slot_id == slot_id).with_for_update().populate_existing().first()
    if slot is None:
        return None
    if slot.slot_type == SLOT_TYPE_PEAK:
        value = 0
    else:
        value = max(0, int(max_non_premium), slot.used_riders_non_premium)
    slot.max_riders_non_premium = value
    slot.updated_at = datetime.now(timezone.utc)
    db.flush()
    return value
