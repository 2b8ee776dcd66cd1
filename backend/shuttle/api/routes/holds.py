"""
Holds API: create / confirm / cancel a provisional reservation, or book a ride straight from it.
Denials surface as 409 with a reason code (see core/errors.py).
"""
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from shuttle.db.session import get_db
from shuttle.services import holds as holds_service
from shuttle.services.ride_lifecycle import ride_to_dict

router = APIRouter()


class Location(BaseModel):
    lat: float | None = None
    lng: float | None = None
    address: str | None = None


class CreateHoldBody(BaseModel):
    slot_id: str
    rider_id: int
    plan_type: str = Field("standard", description="premium | standard | light")
    origin: Location = Field(default_factory=Location)
    destination: Location = Field(default_factory=Location)


class ConfirmHoldBody(BaseModel):
    ride_id: int


class BookHoldBody(BaseModel):
    contact_phone: str | None = None


@router.post("/holds")
def create_hold(body: CreateHoldBody, db: Session = Depends(get_db)) -> dict[str, Any]:
    hold = holds_service.create_hold(
        db,
        body.slot_id,
        body.rider_id,
        body.plan_type,
        origin=body.origin.model_dump(),
        destination=body.destination.model_dump(),
    )
    return {"ok": True, "hold": holds_service.hold_to_dict(hold)}


@router.get("/holds/stats")
def hold_stats(db: Session = Depends(get_db)) -> dict[str, Any]:
    return holds_service.hold_stats(db)


@router.get("/holds/{hold_id}")
def get_hold(hold_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    return holds_service.hold_to_dict(holds_service.get_hold(db, hold_id))


@router.get("/riders/{rider_id}/hold")
def active_hold(rider_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    hold = holds_service.active_hold_for_rider(db, rider_id)
    return {"hold": holds_service.hold_to_dict(hold) if hold else None}


@router.post("/holds/{hold_id}/confirm")
def confirm_hold(hold_id: str, body: ConfirmHoldBody, db: Session = Depends(get_db)) -> dict[str, Any]:
    hold = holds_service.confirm_hold(db, hold_id, body.ride_id)
    return {"ok": True, "hold": holds_service.hold_to_dict(hold)}


@router.post("/holds/{hold_id}/cancel")
def cancel_hold(hold_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    hold = holds_service.cancel_hold(db, hold_id)
    return {"ok": True, "hold": holds_service.hold_to_dict(hold)}


@router.post("/holds/{hold_id}/book")
def book_from_hold(hold_id: str, body: BookHoldBody | None = None, db: Session = Depends(get_db)) -> dict[str, Any]:
    ride = holds_service.book_ride_from_hold(db, hold_id, contact_phone=body.contact_phone if body else None)
    return {"ok": True, "ride": ride_to_dict(ride)}
