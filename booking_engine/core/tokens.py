"""
Booking capability tokens.

A booking ``uid`` is the only credential an invitee holds: whoever presents
it may view, cancel or reschedule that one booking. It is unrelated to the
booking's primary key, is drawn from the OS CSPRNG, and must never be logged
in plaintext. Use ``fingerprint`` when a log line needs to correlate a token.
"""
import hashlib
import secrets
from typing import NewType

BookingUid = NewType("BookingUid", str)

# 32 random bytes -> 43 url-safe characters
UID_NBYTES = 32
UID_MIN_LENGTH = 32
UID_MAX_LENGTH = 64


def generate_booking_uid() -> BookingUid:
    """Generate a fresh, unguessable booking token."""
    return BookingUid(secrets.token_urlsafe(UID_NBYTES))


def is_well_formed(uid: str) -> bool:
    """Cheap shape check before touching the store."""
    if not isinstance(uid, str):
        return False
    if not UID_MIN_LENGTH <= len(uid) <= UID_MAX_LENGTH:
        return False
    return all(c.isalnum() or c in "-_" for c in uid)


def fingerprint(uid: str) -> str:
    """Short, non-reversible identifier for log lines"""
    return hashlib.sha256(uid.encode()).hexdigest()[:12]
