"""Rides API: read a ride and move it through the lifecycle."""
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from shuttle.core.errors import NotFoundError
from shuttle.db.session import get_db
from shuttle.models.ride import Ride
from shuttle.models.ride_event import RideEvent
from shuttle.services.ride_lifecycle import apply_status_transition, ride_to_dict

router = APIRouter()


class StatusBody(BaseModel):
    status: str
    actor_id: int | None = None
    actor_type: str = Field("system", description="system | rider | driver | admin")


@router.get("/rides/{ride_id}")
def get_ride(ride_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    ride = db.get(Ride, ride_id)
    if ride is None:
        raise NotFoundError(f"Ride {ride_id} not found")
    return ride_to_dict(ride)


@router.get("/rides/{ride_id}/events")
def ride_events(ride_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    rows = db.query(RideEvent).filter(RideEvent.ride_id == ride_id).order_by(RideEvent.id).all()
    return {
        "events": [
            {
                "old_status": r.old_status,
                "new_status": r.new_status,
                "actor_type": r.actor_type,
                "actor_id": r.actor_id,
                "meta": r.meta or {},
                "created_at": r.created_at.isoformat() if r.created_at else None,
            }
            for r in rows
        ]
    }


@router.post("/rides/{ride_id}/status")
def update_status(ride_id: int, body: StatusBody, db: Session = Depends(get_db)) -> dict[str, Any]:
    ride = apply_status_transition(db, ride_id, body.status, actor_id=body.actor_id, actor_type=body.actor_type)
    return {"ok": True, "ride": ride_to_dict(ride)}
