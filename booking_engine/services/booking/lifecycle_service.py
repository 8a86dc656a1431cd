# ============================================================================
# booking_engine/services/booking/lifecycle_service.py
# Authorized status transitions
# ============================================================================
"""
Booking lifecycle.

    pending -> confirmed -> completed | no_show
    pending | confirmed -> cancelled
    pending | confirmed -> rescheduled   (ConflictGuard.reschedule_by_token)

Every transition is one conditional UPDATE guarded by the actor's credential
(host id or booking uid) and the expected current status. When it touches no
row the booking is re-read to explain why: a booking already in the target
state is reported as unchanged rather than as an error, so two actors racing
to cancel both succeed and only one of them changes anything.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence
from uuid import UUID
import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from booking_engine.core.exceptions import InvalidStateError, NotFoundError, UnauthorizedError
from booking_engine.core.tokens import fingerprint, is_well_formed
from booking_engine.models.base import utcnow
from booking_engine.models.booking import ACTIVE_STATUSES, Booking, BookingStatus, CancelledBy
from booking_engine.services.booking.transactions import booking_transaction
from booking_engine.services.notification.notification_service import (
    BOOKING_CANCELLATION,
    BOOKING_CONFIRMATION,
    NotificationService,
)
from booking_engine.utils.time_intervals import to_utc

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    booking: Booking
    changed: bool


class LifecycleService:
    """Host and invitee actions on existing bookings"""

    @staticmethod
    def _apply(
            db: Session,
            booking_id: UUID,
            host_id: UUID,
            from_statuses: Sequence[str],
            target: BookingStatus,
            values: dict,
            state_code: str,
            extra_conditions: Sequence = ()
    ) -> TransitionResult:
        stmt = (
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.host_id == host_id,
                Booking.status.in_(from_statuses),
                *extra_conditions
            )
            .values(status=target.value, updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )

        with booking_transaction(db, f"moving booking to {target.value}"):
            result = db.execute(stmt)
            if result.rowcount == 1:
                db.commit()
                booking = db.get(Booking, booking_id, populate_existing=True)
                logger.info(f"Booking {booking_id} -> {target.value}")
                return TransitionResult(booking=booking, changed=True)
            db.rollback()

        booking = db.get(Booking, booking_id, populate_existing=True)
        if booking is None:
            raise NotFoundError("Booking not found")
        if booking.host_id != host_id:
            raise UnauthorizedError("Booking belongs to another host")
        if booking.status == target.value:
            return TransitionResult(booking=booking, changed=False)
        raise InvalidStateError(f"Booking is {booking.status}", code=state_code)

    @staticmethod
    def confirm(
            db: Session,
            booking_id: UUID,
            host_id: UUID,
            correlation_id: Optional[str] = None
    ) -> TransitionResult:
        """pending -> confirmed"""
        result = LifecycleService._apply(
            db, booking_id, host_id,
            from_statuses=(BookingStatus.PENDING.value,),
            target=BookingStatus.CONFIRMED,
            values={},
            state_code="not_pending",
        )
        if result.changed:
            NotificationService.dispatch(BOOKING_CONFIRMATION, booking_id, correlation_id)
        return result

    @staticmethod
    def cancel_by_host(
            db: Session,
            booking_id: UUID,
            host_id: UUID,
            reason: Optional[str] = None,
            correlation_id: Optional[str] = None
    ) -> TransitionResult:
        """pending | confirmed -> cancelled"""
        result = LifecycleService._apply(
            db, booking_id, host_id,
            from_statuses=ACTIVE_STATUSES,
            target=BookingStatus.CANCELLED,
            values={"cancellation_reason": reason, "cancelled_by": CancelledBy.HOST.value},
            state_code="not_active",
        )
        if result.changed:
            NotificationService.dispatch(BOOKING_CANCELLATION, booking_id, correlation_id)
        return result

    @staticmethod
    def mark_completed(db: Session, booking_id: UUID, host_id: UUID) -> TransitionResult:
        """confirmed -> completed"""
        return LifecycleService._apply(
            db, booking_id, host_id,
            from_statuses=(BookingStatus.CONFIRMED.value,),
            target=BookingStatus.COMPLETED,
            values={},
            state_code="not_confirmed",
        )

    @staticmethod
    def mark_no_show(
            db: Session,
            booking_id: UUID,
            host_id: UUID,
            now: Optional[datetime] = None
    ) -> TransitionResult:
        """confirmed -> no_show, only once the meeting has started"""
        now = to_utc(now) if now else datetime.now(timezone.utc)
        try:
            return LifecycleService._apply(
                db, booking_id, host_id,
                from_statuses=(BookingStatus.CONFIRMED.value,),
                target=BookingStatus.NO_SHOW,
                values={},
                state_code="not_confirmed",
                extra_conditions=(Booking.start_time <= now,),
            )
        except InvalidStateError as e:
            booking = db.get(Booking, booking_id)
            if booking is not None and booking.status == BookingStatus.CONFIRMED.value:
                raise InvalidStateError("Booking has not started yet", code="booking_in_future") from e
            raise

    @staticmethod
    def cancel_by_token(
            db: Session,
            uid: str,
            reason: Optional[str] = None,
            correlation_id: Optional[str] = None
    ) -> TransitionResult:
        """
        Invitee cancellation. Possession of the uid is the only credential.
        Unknown tokens get NotFoundError and nothing is written.
        """
        if not is_well_formed(uid):
            raise NotFoundError("Booking not found")

        stmt = (
            update(Booking)
            .where(Booking.uid == uid, Booking.status.in_(ACTIVE_STATUSES))
            .values(
                status=BookingStatus.CANCELLED.value,
                cancellation_reason=reason,
                cancelled_by=CancelledBy.INVITEE.value,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

        with booking_transaction(db, "cancelling by token"):
            result = db.execute(stmt)
            if result.rowcount == 1:
                db.commit()
            else:
                db.rollback()

        booking = db.query(Booking).populate_existing().filter(Booking.uid == uid).first()
        if booking is None:
            raise NotFoundError("Booking not found")

        if result.rowcount == 1:
            logger.info(f"Booking {booking.id} cancelled by invitee (uid {fingerprint(uid)})")
            NotificationService.dispatch(BOOKING_CANCELLATION, booking.id, correlation_id)
            return TransitionResult(booking=booking, changed=True)

        if booking.status == BookingStatus.CANCELLED.value:
            return TransitionResult(booking=booking, changed=False)
        raise InvalidStateError(f"Booking is {booking.status}", code="not_active")

    @staticmethod
    def lookup_by_token(db: Session, uid: str) -> Booking:
        """Read-only; repeated calls return the same data absent mutations."""
        if not is_well_formed(uid):
            raise NotFoundError("Booking not found")

        booking = db.query(Booking).filter(Booking.uid == uid).first()
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking
