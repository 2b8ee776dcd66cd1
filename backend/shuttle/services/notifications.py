"""
Ride status notifications: best-effort side channel, run after the status change has committed.

Observers receive a RideStatusChange. A failing observer is logged and skipped; it can never undo
or block the transition that triggered it. The default observer records a notifications row and,
when Twilio credentials are configured and the ride has a contact phone, sends the SMS from a
daemon thread so the caller never waits on Twilio.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

import httpx

from shuttle.config import settings
from shuttle.db.session import SessionLocal
from shuttle.models.notification import Notification

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"

STATUS_MESSAGES = {
    "scheduled": "Your ride is booked.",
    "driver_en_route": "Your driver is on the way.",
    "arrived": "Your driver has arrived.",
    "in_progress": "Your ride has started.",
    "completed": "Your ride is complete. Thanks for riding!",
    "cancelled_by_user": "Your ride was cancelled.",
    "cancelled_by_admin": "Your ride was cancelled by dispatch.",
    "cancelled_by_driver": "Your driver cancelled this ride. We'll be in touch.",
    "no_show": "We missed you at pickup. This ride was marked as a no-show.",
}


@dataclass(frozen=True)
class RideStatusChange:
    ride_id: int
    user_id: int
    old_status: str
    new_status: str
    actor_type: str
    actor_id: int | None
    at: datetime
    contact_phone: str | None = None
    meta: dict | None = None


Observer = Callable[[RideStatusChange], None]

_observers: list[Observer] = []


def register_observer(observer: Observer) -> None:
    if observer not in _observers:
        _observers.append(observer)


def unregister_observer(observer: Observer) -> None:
    if observer in _observers:
        _observers.remove(observer)


def notify_status_change(change: RideStatusChange) -> None:
    """Fan out to every observer. Never raises."""
    for observer in list(_observers):
        try:
            observer(change)
        except Exception as e:
            logger.warning(
                "notification observer %s failed for ride %s: %s",
                getattr(observer, "__name__", observer),
                change.ride_id,
                e,
                exc_info=True,
            )


def twilio_configured() -> bool:
    return bool(settings.twilio_account_sid and settings.twilio_auth_token and settings.twilio_from_number)


def send_sms(to_number: str, body: str) -> bool:
    """
    Send one SMS through the Twilio REST API. Returns True when Twilio accepted it, False when
    SMS is not configured or the request failed.
    """
    if not twilio_configured():
        logger.debug("Twilio not configured; skipping SMS")
        return False
    url = TWILIO_MESSAGES_URL.format(sid=settings.twilio_account_sid)
    data = {"To": to_number, "From": settings.twilio_from_number, "Body": body}
    try:
        with httpx.Client(timeout=10.0) as client:
            resp = client.post(url, data=data, auth=(settings.twilio_account_sid, settings.twilio_auth_token))
        if resp.status_code in (200, 201):
            return True
        logger.warning("Twilio returned %s for %s: %s", resp.status_code, to_number[-4:], resp.text)
        return False
    except httpx.HTTPError as e:
        logger.warning("Twilio request failed: %s", e, exc_info=True)
        return False


def run_in_background(target: Callable[..., None], *args) -> None:
    threading.Thread(target=target, args=args, daemon=True).start()


def deliver_sms(notification_id: int, to_number: str, body: str) -> None:
    """Send a queued SMS and record the outcome on its notification row."""
    status = "sent" if send_sms(to_number, body) else "failed"
    db = SessionLocal()
    try:
        db.query(Notification).filter(Notification.id == notification_id).update(
            {Notification.sms_status: status}, synchronize_session=False
        )
        db.commit()
    except Exception as e:
        logger.exception("deliver_sms: could not record status for notification %s: %s", notification_id, e)
        db.rollback()
    finally:
        db.close()


def record_status_notification(change: RideStatusChange) -> None:
    """Record the notification row, then hand the SMS (if any) to a background thread."""
    message = STATUS_MESSAGES.get(change.new_status)
    if not message:
        return
    send = bool(change.contact_phone and twilio_configured())
    db = SessionLocal()
    try:
        row = Notification(
            user_id=change.user_id,
            ride_id=change.ride_id,
            kind="ride_status",
            message=message,
            sms_status="queued" if send else "skipped",
        )
        db.add(row)
        db.commit()
        notification_id = row.id
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
    if send:
        run_in_background(deliver_sms, notification_id, change.contact_phone, message)


register_observer(record_status_notification)
