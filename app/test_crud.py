from datetime import date

import pytest

import crud
from conftest import booking_data, property_data, user_data
from database import transaction
from errors import (
    CheckViolation,
    ForeignKeyViolation,
    InvalidPasswordError,
    InvalidTransitionError,
    NotFoundError,
    NotNullViolation,
    UniqueViolation,
)

JAN_1 = date(2025, 1, 1)
JAN_5 = date(2025, 1, 5)


@pytest.fixture
def host(db_session):
    with transaction(db_session):
        user = crud.create_user(db_session, user_data(first_name="Hana", email="host@example.com", role="host"))
    return user

@pytest.fixture
def guest(db_session):
    with transaction(db_session):
        user = crud.create_user(db_session, user_data(first_name="Gus", email="guest@example.com"))
    return user

@pytest.fixture
def listing(db_session, host):
    with transaction(db_session):
        prop = crud.create_property(db_session, property_data(host.id))
    return prop

@pytest.fixture
def booking(db_session, listing, guest):
    with transaction(db_session):
        b = crud.create_booking(db_session, booking_data(listing.id, guest.id, JAN_1, JAN_5))
    return b


# ---------- Users ----------

def test_create_user_hashes_password(db_session):
    user = crud.create_user(db_session, user_data())
    assert user.id is not None
    assert user.password_hash != "s3cret-pass"
    assert crud.verify_password("s3cret-pass", user.password_hash)
    assert user.role == "guest"

def test_duplicate_email_fails(db_session, guest):
    with pytest.raises(UniqueViolation):
        with transaction(db_session):
            crud.create_user(db_session, user_data(email="guest@example.com"))
    assert len(crud.list_users(db_session)) == 1

def test_role_outside_enumeration_fails(db_session):
    with pytest.raises(CheckViolation):
        crud.create_user(db_session, user_data(role="superuser"))

def test_missing_required_field_fails(db_session):
    data = user_data()
    data["last_name"] = None
    with pytest.raises(NotNullViolation):
        crud.create_user(db_session, data)

def test_authenticate_user(db_session, guest):
    assert crud.authenticate_user(db_session, "guest@example.com", "s3cret-pass").id == guest.id
    assert crud.authenticate_user(db_session, "guest@example.com", "wrong-pass") is None
    assert crud.authenticate_user(db_session, "nobody@example.com", "s3cret-pass") is None

# "é" is two bytes in UTF-8, so 40 of them overflow bcrypt's 72-byte limit
def test_authenticate_user_with_overlong_password(db_session, guest):
    assert crud.authenticate_user(db_session, "guest@example.com", "x" * 100) is None
    assert crud.authenticate_user(db_session, "guest@example.com", "é" * 40) is None

def test_password_over_72_bytes_is_refused(db_session):
    with pytest.raises(InvalidPasswordError):
        crud.create_user(db_session, user_data(password="é" * 40))
    assert crud.list_users(db_session) == []

def test_update_user_rehashes_password(db_session, guest):
    with transaction(db_session):
        crud.update_user(db_session, guest.id, {"password": "another-pass", "phone_number": "555-0101"})
    user = crud.get_user(db_session, guest.id)
    assert user.phone_number == "555-0101"
    assert crud.verify_password("another-pass", user.password_hash)

def test_list_users_by_role(db_session, host, guest):
    assert [u.id for u in crud.list_users(db_session, role="host")] == [host.id]
    assert [u.id for u in crud.list_users(db_session, email="guest@example.com")] == [guest.id]

def test_get_missing_user(db_session):
    with pytest.raises(NotFoundError):
        crud.get_user(db_session, 999)

def test_update_missing_user(db_session):
    with pytest.raises(NotFoundError):
        crud.update_user(db_session, 999, {"first_name": "X"})

def test_delete_user_without_dependents(db_session, guest):
    with transaction(db_session):
        crud.delete_user(db_session, guest.id)
    with pytest.raises(NotFoundError):
        crud.get_user(db_session, guest.id)

def test_delete_host_with_property_fails_and_keeps_rows(db_session, host, listing):
    with pytest.raises(ForeignKeyViolation):
        with transaction(db_session):
            crud.delete_user(db_session, host.id)
    assert crud.get_user(db_session, host.id).email == "host@example.com"
    assert crud.get_property(db_session, listing.id).host_id == host.id


# ---------- Properties ----------

def test_property_requires_existing_host(db_session):
    with pytest.raises(ForeignKeyViolation):
        crud.create_property(db_session, property_data(999))

def test_negative_price_fails(db_session, host):
    with pytest.raises(CheckViolation):
        crud.create_property(db_session, property_data(host.id, price_per_night=-1))

def test_price_update_visible_by_location_lookup(db_session, host):
    with transaction(db_session):
        prop = crud.create_property(db_session, property_data(host.id, location="Lisbon", price_per_night=120.00))
    with transaction(db_session):
        crud.update_property(db_session, prop.id, {"price_per_night": 150.00})
    found = crud.list_properties(db_session, location="Lisbon")
    assert [p.id for p in found] == [prop.id]
    assert found[0].price_per_night == 150.00

def test_list_properties_price_range(db_session, host):
    with transaction(db_session):
        cheap = crud.create_property(db_session, property_data(host.id, name="Cheap", price_per_night=50))
        mid = crud.create_property(db_session, property_data(host.id, name="Mid", price_per_night=100))
        crud.create_property(db_session, property_data(host.id, name="Dear", price_per_night=300))
    assert [p.id for p in crud.list_properties(db_session, max_price=100)] == [cheap.id, mid.id]
    assert [p.id for p in crud.list_properties(db_session, min_price=60, max_price=200)] == [mid.id]


# ---------- Bookings ----------

def test_booking_status_update_round_trip(db_session, booking):
    assert booking.status == "pending"
    with transaction(db_session):
        crud.set_booking_status(db_session, booking.id, "confirmed")
    db_session.expire_all()
    assert crud.get_booking(db_session, booking.id).status == "confirmed"

def test_canceled_booking_cannot_be_confirmed(db_session, booking):
    with transaction(db_session):
        crud.set_booking_status(db_session, booking.id, "canceled")
    with pytest.raises(InvalidTransitionError):
        crud.set_booking_status(db_session, booking.id, "confirmed")


def test_failed_update_inside_transaction_rolls_back_field_changes(db_session, booking):
    with transaction(db_session):
        crud.set_booking_status(db_session, booking.id, "canceled")
    with pytest.raises(InvalidTransitionError):
        with transaction(db_session):
            crud.update_booking(db_session, booking.id, {"total_price": 999.0, "status": "confirmed"})
    db_session.expire_all()
    unchanged = crud.get_booking(db_session, booking.id)
    assert unchanged.total_price == 480.0
    assert unchanged.status == "canceled"

def test_same_status_is_noop(db_session, booking):
    assert crud.set_booking_status(db_session, booking.id, "pending").status == "pending"

def test_update_booking_routes_status_through_transitions(db_session, booking):
    with transaction(db_session):
        crud.update_booking(db_session, booking.id, {"status": "confirmed", "total_price": 500.0})
    updated = crud.get_booking(db_session, booking.id)
    assert updated.status == "confirmed"
    assert updated.total_price == 500.0

def test_end_date_before_start_date_fails(db_session, listing, guest):
    with pytest.raises(CheckViolation):
        crud.create_booking(db_session, booking_data(listing.id, guest.id, JAN_5, JAN_1))

def test_same_day_booking_allowed(db_session, listing, guest):
    b = crud.create_booking(db_session, booking_data(listing.id, guest.id, JAN_1, JAN_1))
    assert b.start_date == b.end_date

def test_unknown_status_fails(db_session, listing, guest):
    with pytest.raises(CheckViolation):
        crud.create_booking(db_session, booking_data(listing.id, guest.id, JAN_1, JAN_5, status="archived"))

def test_booking_requires_existing_property(db_session, guest):
    with pytest.raises(ForeignKeyViolation):
        crud.create_booking(db_session, booking_data(999, guest.id, JAN_1, JAN_5))

def test_list_bookings_by_date_range(db_session, listing, guest):
    with transaction(db_session):
        early = crud.create_booking(db_session, booking_data(listing.id, guest.id, JAN_1, JAN_5))
        late = crud.create_booking(
            db_session, booking_data(listing.id, guest.id, date(2025, 3, 1), date(2025, 3, 3))
        )
    assert [b.id for b in crud.list_bookings(db_session, start_after=date(2025, 2, 1))] == [late.id]
    assert [b.id for b in crud.list_bookings(db_session, end_before=date(2025, 1, 31))] == [early.id]
    assert len(crud.list_bookings(db_session, user_id=guest.id, status="pending")) == 2

def test_delete_booking_with_payment_fails(db_session, booking):
    with transaction(db_session):
        crud.create_payment(db_session, {"booking_id": booking.id, "amount": 480.0, "payment_method": "stripe"})
    with pytest.raises(ForeignKeyViolation):
        with transaction(db_session):
            crud.delete_booking(db_session, booking.id)


# ---------- Booking + payment ----------

def test_book_and_pay_commits_both(db_session, listing, guest):
    b, p = crud.book_and_pay(
        db_session,
        booking_data(listing.id, guest.id, JAN_1, JAN_5),
        {"amount": 480.0, "payment_method": "paypal"},
    )
    assert p.booking_id == b.id
    assert [x.id for x in crud.list_payments(db_session, booking_id=b.id)] == [p.id]

def test_book_and_pay_rolls_back_booking_when_payment_fails(db_session, listing, guest):
    with pytest.raises(CheckViolation):
        crud.book_and_pay(
            db_session,
            booking_data(listing.id, guest.id, JAN_1, JAN_5),
            {"amount": 480.0, "payment_method": "cash"},
        )
    assert crud.list_bookings(db_session) == []
    assert crud.list_payments(db_session) == []


# ---------- Payments ----------

def test_negative_payment_amount_fails(db_session, booking):
    with pytest.raises(CheckViolation):
        crud.create_payment(db_session, {"booking_id": booking.id, "amount": -5, "payment_method": "stripe"})

def test_list_payments_by_method(db_session, booking):
    with transaction(db_session):
        card = crud.create_payment(db_session, {"booking_id": booking.id, "amount": 100, "payment_method": "credit_card"})
        crud.create_payment(db_session, {"booking_id": booking.id, "amount": 380, "payment_method": "paypal"})
    assert [p.id for p in crud.list_payments(db_session, payment_method="credit_card")] == [card.id]


# ---------- Reviews ----------

@pytest.mark.parametrize("rating", [0, 6])
def test_rating_out_of_range_fails(db_session, listing, guest, rating):
    with pytest.raises(CheckViolation):
        crud.create_review(db_session, {"property_id": listing.id, "user_id": guest.id, "rating": rating})

@pytest.mark.parametrize("rating", [1, 5])
def test_rating_bounds_accepted(db_session, listing, guest, rating):
    review = crud.create_review(db_session, {"property_id": listing.id, "user_id": guest.id, "rating": rating})
    assert review.rating == rating

def test_update_review_out_of_range_fails(db_session, listing, guest):
    with transaction(db_session):
        review = crud.create_review(db_session, {"property_id": listing.id, "user_id": guest.id, "rating": 3})
    with pytest.raises(CheckViolation):
        with transaction(db_session):
            crud.update_review(db_session, review.id, {"rating": 9})
    assert crud.get_review(db_session, review.id).rating == 3


# ---------- Messages ----------

def test_message_to_self_allowed(db_session, guest):
    msg = crud.create_message(
        db_session, {"sender_id": guest.id, "recipient_id": guest.id, "message_body": "note to self"}
    )
    assert msg.sender_id == msg.recipient_id

def test_message_to_unknown_user_fails(db_session, guest):
    with pytest.raises(ForeignKeyViolation):
        crud.create_message(db_session, {"sender_id": guest.id, "recipient_id": 999, "message_body": "hello?"})

def test_list_messages_between_users(db_session, host, guest):
    with transaction(db_session):
        asked = crud.create_message(db_session, {"sender_id": guest.id, "recipient_id": host.id, "message_body": "Pets ok?"})
        crud.create_message(db_session, {"sender_id": host.id, "recipient_id": guest.id, "message_body": "Yes."})
    assert [m.id for m in crud.list_messages(db_session, sender_id=guest.id)] == [asked.id]
    assert len(crud.list_messages(db_session, recipient_id=guest.id)) == 1

def test_delete_missing_message(db_session):
    with pytest.raises(NotFoundError):
        crud.delete_message(db_session, 1)
