from datetime import date
from typing import Any, Dict, List, Optional

import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import models_sqlalchemy as models
from config import BCRYPT_ROUNDS
from database import transaction
from errors import InvalidPasswordError, InvalidTransitionError, NotFoundError, translate_integrity_error
from logger import get_logger

logger = get_logger(__name__)

# status -> statuses it may move to
BOOKING_TRANSITIONS = {
    "pending": {"confirmed", "canceled"},
    "confirmed": {"canceled"},
    "canceled": set(),
}


# everything below flushes only; callers commit through database.transaction
def _flush(db: Session) -> None:
    try:
        db.flush()
    except IntegrityError as e:
        raise translate_integrity_error(e) from e


def _get(db: Session, model, entity_id: int):
    obj = db.get(model, entity_id)
    if obj is None:
        raise NotFoundError(model.__name__, entity_id)
    return obj


def _create(db: Session, model, data: Dict[str, Any]):
    obj = model(**data)
    db.add(obj)
    _flush(db)
    logger.info("Created %s %s", model.__name__, obj.id)
    return obj


def _update(db: Session, model, entity_id: int, changes: Dict[str, Any]):
    obj = _get(db, model, entity_id)
    for field, value in changes.items():
        setattr(obj, field, value)
    _flush(db)
    logger.info("Updated %s %s: %s", model.__name__, entity_id, ", ".join(sorted(changes)))
    return obj


def _delete(db: Session, model, entity_id: int) -> None:
    obj = _get(db, model, entity_id)
    db.delete(obj)
    _flush(db)
    logger.info("Deleted %s %s", model.__name__, entity_id)


# ---------- Passwords ----------
# bcrypt refuses passwords longer than this many UTF-8 bytes
MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise InvalidPasswordError(MAX_PASSWORD_BYTES)
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


# ---------- Users ----------
def create_user(db: Session, data: Dict[str, Any]) -> models.User:
    data = dict(data)
    if "password" in data:
        data["password_hash"] = hash_password(data.pop("password"))
    return _create(db, models.User, data)


def get_user(db: Session, user_id: int) -> models.User:
    return _get(db, models.User, user_id)


def list_users(db: Session, role: Optional[str] = None, email: Optional[str] = None) -> List[models.User]:
    query = db.query(models.User)
    if role is not None:
        query = query.filter(models.User.role == role)
    if email is not None:
        query = query.filter(models.User.email == email)
    return query.order_by(models.User.id).all()


def update_user(db: Session, user_id: int, changes: Dict[str, Any]) -> models.User:
    changes = dict(changes)
    if "password" in changes:
        changes["password_hash"] = hash_password(changes.pop("password"))
    return _update(db, models.User, user_id, changes)


def delete_user(db: Session, user_id: int) -> None:
    _delete(db, models.User, user_id)


def authenticate_user(db: Session, email: str, password: str) -> Optional[models.User]:
    user = db.query(models.User).filter(models.User.email == email).first()
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


# ---------- Properties ----------
def create_property(db: Session, data: Dict[str, Any]) -> models.Property:
    return _create(db, models.Property, data)


def get_property(db: Session, property_id: int) -> models.Property:
    return _get(db, models.Property, property_id)


def list_properties(
    db: Session,
    host_id: Optional[int] = None,
    location: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
) -> List[models.Property]:
    query = db.query(models.Property)
    if host_id is not None:
        query = query.filter(models.Property.host_id == host_id)
    if location is not None:
        query = query.filter(models.Property.location == location)
    if min_price is not None:
        query = query.filter(models.Property.price_per_night >= min_price)
    if max_price is not None:
        query = query.filter(models.Property.price_per_night <= max_price)
    return query.order_by(models.Property.id).all()


def update_property(db: Session, property_id: int, changes: Dict[str, Any]) -> models.Property:
    return _update(db, models.Property, property_id, changes)


def delete_property(db: Session, property_id: int) -> None:
    _delete(db, models.Property, property_id)


# ---------- Bookings ----------
def create_booking(db: Session, data: Dict[str, Any]) -> models.Booking:
    return _create(db, models.Booking, data)


def get_booking(db: Session, booking_id: int) -> models.Booking:
    return _get(db, models.Booking, booking_id)


def list_bookings(
    db: Session,
    user_id: Optional[int] = None,
    property_id: Optional[int] = None,
    status: Optional[str] = None,
    start_after: Optional[date] = None,
    end_before: Optional[date] = None,
) -> List[models.Booking]:
    query = db.query(models.Booking)
    if user_id is not None:
        query = query.filter(models.Booking.user_id == user_id)
    if property_id is not None:
        query = query.filter(models.Booking.property_id == property_id)
    if status is not None:
        query = query.filter(models.Booking.status == status)
    if start_after is not None:
        query = query.filter(models.Booking.start_date >= start_after)
    if end_before is not None:
        query = query.filter(models.Booking.end_date <= end_before)
    return query.order_by(models.Booking.id).all()


def update_booking(db: Session, booking_id: int, changes: Dict[str, Any]) -> models.Booking:
    changes = dict(changes)
    status = changes.pop("status", None)
    booking = _update(db, models.Booking, booking_id, changes) if changes else get_booking(db, booking_id)
    if status is not None:
        booking = set_booking_status(db, booking_id, status)
    return booking


def set_booking_status(db: Session, booking_id: int, status: str) -> models.Booking:
    booking = get_booking(db, booking_id)
    if status == booking.status:
        return booking
    if status not in BOOKING_TRANSITIONS.get(booking.status, set()):
        raise InvalidTransitionError(booking.status, status)
    return _update(db, models.Booking, booking_id, {"status": status})


def delete_booking(db: Session, booking_id: int) -> None:
    _delete(db, models.Booking, booking_id)


def book_and_pay(db: Session, booking_data: Dict[str, Any], payment_data: Dict[str, Any]):
    """
    Write a booking and its payment as one unit and commit them.

    If either insert fails both are rolled back and the error propagates.
    """
    with transaction(db):
        booking = create_booking(db, booking_data)
        payment = create_payment(db, dict(payment_data, booking_id=booking.id))
    logger.info("Booking %s paid by payment %s", booking.id, payment.id)
    return booking, payment


# ---------- Payments ----------
def create_payment(db: Session, data: Dict[str, Any]) -> models.Payment:
    return _create(db, models.Payment, data)


def get_payment(db: Session, payment_id: int) -> models.Payment:
    return _get(db, models.Payment, payment_id)


def list_payments(
    db: Session, booking_id: Optional[int] = None, payment_method: Optional[str] = None
) -> List[models.Payment]:
    query = db.query(models.Payment)
    if booking_id is not None:
        query = query.filter(models.Payment.booking_id == booking_id)
    if payment_method is not None:
        query = query.filter(models.Payment.payment_method == payment_method)
    return query.order_by(models.Payment.id).all()


def update_payment(db: Session, payment_id: int, changes: Dict[str, Any]) -> models.Payment:
    return _update(db, models.Payment, payment_id, changes)


def delete_payment(db: Session, payment_id: int) -> None:
    _delete(db, models.Payment, payment_id)


# ---------- Reviews ----------
def create_review(db: Session, data: Dict[str, Any]) -> models.Review:
    return _create(db, models.Review, data)


def get_review(db: Session, review_id: int) -> models.Review:
    return _get(db, models.Review, review_id)


def list_reviews(
    db: Session,
    property_id: Optional[int] = None,
    user_id: Optional[int] = None,
    min_rating: Optional[int] = None,
) -> List[models.Review]:
    query = db.query(models.Review)
    if property_id is not None:
        query = query.filter(models.Review.property_id == property_id)
    if user_id is not None:
        query = query.filter(models.Review.user_id == user_id)
    if min_rating is not None:
        query = query.filter(models.Review.rating >= min_rating)
    return query.order_by(models.Review.id).all()


def update_review(db: Session, review_id: int, changes: Dict[str, Any]) -> models.Review:
    return _update(db, models.Review, review_id, changes)


def delete_review(db: Session, review_id: int) -> None:
    _delete(db, models.Review, review_id)


# ---------- Messages ----------
def create_message(db: Session, data: Dict[str, Any]) -> models.Message:
    return _create(db, models.Message, data)


def get_message(db: Session, message_id: int) -> models.Message:
    return _get(db, models.Message, message_id)


def list_messages(
    db: Session, sender_id: Optional[int] = None, recipient_id: Optional[int] = None
) -> List[models.Message]:
    query = db.query(models.Message)
    if sender_id is not None:
        query = query.filter(models.Message.sender_id == sender_id)
    if recipient_id is not None:
        query = query.filter(models.Message.recipient_id == recipient_id)
    return query.order_by(models.Message.id).all()


def update_message(db: Session, message_id: int, changes: Dict[str, Any]) -> models.Message:
    return _update(db, models.Message, message_id, changes)


def delete_message(db: Session, message_id: int) -> None:
    _delete(db, models.Message, message_id)
