from booking_engine.core.middleware import redact_path
from booking_engine.core.tokens import fingerprint, generate_booking_uid, is_well_formed


def test_generated_uids_are_unique_and_well_formed():
    uids = {generate_booking_uid() for _ in range(200)}

    assert len(uids) == 200
    assert all(is_well_formed(uid) for uid in uids)


def test_is_well_formed():
    assert not is_well_formed("")
    assert not is_well_formed("a" * 31)
    assert not is_well_formed("a" * 65)
    assert not is_well_formed("a" * 40 + "/../")
    assert not is_well_formed(None)
    assert is_well_formed("A-b_" * 10)


def test_fingerprint_does_not_reveal_the_token():
    uid = generate_booking_uid()

    assert fingerprint(uid) == fingerprint(uid)
    assert len(fingerprint(uid)) == 12
    assert fingerprint(uid) not in uid


def test_redact_path_hides_booking_tokens():
    uid = generate_booking_uid()

    assert redact_path(f"/api/v1/public/bookings/{uid}/cancel") == "/api/v1/public/bookings/<uid>/cancel"
    assert redact_path("/api/v1/dashboard/bookings") == "/api/v1/dashboard/bookings"
