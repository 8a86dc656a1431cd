# booking_engine/services/booking/transactions.py
from contextlib import contextmanager
import logging

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from booking_engine.core.exceptions import ConflictError, TransientStoreError
from booking_engine.models.booking import EXCLUSION_CONSTRAINT_NAME

logger = logging.getLogger(__name__)


@contextmanager
def booking_transaction(db: Session, action: str):
    """
    Roll back on any failure and translate store errors.

    An exclusion-constraint violation becomes ConflictError; a timeout or lost
    connection becomes TransientStoreError. Nothing is left half-written.
    """
    try:
        yield
    except IntegrityError as e:
        db.rollback()
        if EXCLUSION_CONSTRAINT_NAME in str(e.orig):
            logger.info(f"Overlap rejected by the store while {action}")
            raise ConflictError("This time slot is no longer available")
        raise
    except OperationalError as e:
        db.rollback()
        logger.warning(f"Store unavailable while {action}: {e}")
        raise TransientStoreError("Booking store is temporarily unavailable, please retry")
    except Exception:
        db.rollback()
        raise
