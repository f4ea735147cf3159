from typing import Any, Dict, List

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models_sqlalchemy import Booking, Property, Review, User


def _rows(query) -> List[Dict[str, Any]]:
    return [dict(row._mapping) for row in query.all()]


# ---------- Joins ----------
def bookings_with_guests(db: Session) -> List[Dict[str, Any]]:
    query = (
        db.query(
            Booking.id.label("booking_id"),
            Booking.property_id,
            Booking.start_date,
            Booking.end_date,
            Booking.status,
            User.id.label("user_id"),
            User.first_name,
            User.last_name,
            User.email,
        )
        .join(User, Booking.user_id == User.id)
        .order_by(Booking.id)
    )
    return _rows(query)


def properties_with_reviews(db: Session) -> List[Dict[str, Any]]:
    # unreviewed properties come back with review_id None
    query = (
        db.query(
            Property.id.label("property_id"),
            Property.name,
            Review.id.label("review_id"),
            Review.rating,
            Review.comment,
        )
        .outerjoin(Review, Review.property_id == Property.id)
        .order_by(Property.id, Review.id)
    )
    return _rows(query)


def users_and_bookings(db: Session) -> List[Dict[str, Any]]:
    # FULL OUTER JOIN built from two LEFT JOINs for engines that lack it
    left = (
        db.query(
            User.id.label("user_id"),
            User.email,
            Booking.id.label("booking_id"),
            Booking.status,
        )
        .outerjoin(Booking, Booking.user_id == User.id)
        .order_by(User.id, Booking.id)
    )
    right = (
        db.query(
            User.id.label("user_id"),
            User.email,
            Booking.id.label("booking_id"),
            Booking.status,
        )
        .select_from(Booking)
        .outerjoin(User, Booking.user_id == User.id)
        .filter(User.id.is_(None))
        .order_by(Booking.id)
    )
    return _rows(left) + _rows(right)


# ---------- Subqueries ----------
def properties_with_average_rating_above(db: Session, threshold: float = 4.0) -> List[Dict[str, Any]]:
    rated = (
        select(Review.property_id)
        .group_by(Review.property_id)
        .having(func.avg(Review.rating) > threshold)
    )
    query = (
        db.query(Property.id.label("property_id"), Property.name, Property.location)
        .filter(Property.id.in_(rated))
        .order_by(Property.id)
    )
    return _rows(query)


def users_with_more_bookings_than(db: Session, count: int = 3) -> List[Dict[str, Any]]:
    booking_count = (
        select(func.count(Booking.id))
        .where(Booking.user_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    query = (
        db.query(
            User.id.label("user_id"),
            User.first_name,
            User.last_name,
            booking_count.label("booking_count"),
        )
        .filter(booking_count > count)
        .order_by(User.id)
    )
    return _rows(query)


# ---------- Aggregates ----------
def booking_counts_by_user(db: Session) -> List[Dict[str, Any]]:
    query = (
        db.query(User.id.label("user_id"), User.email, func.count(Booking.id).label("booking_count"))
        .outerjoin(Booking, Booking.user_id == User.id)
        .group_by(User.id, User.email)
        .order_by(func.count(Booking.id).desc(), User.id)
    )
    return _rows(query)


def average_rating_by_property(db: Session) -> List[Dict[str, Any]]:
    query = (
        db.query(
            Property.id.label("property_id"),
            Property.name,
            func.avg(Review.rating).label("average_rating"),
            func.count(Review.id).label("review_count"),
        )
        .join(Review, Review.property_id == Property.id)
        .group_by(Property.id, Property.name)
        .order_by(Property.id)
    )
    rows = _rows(query)
    for row in rows:
        row["average_rating"] = float(row["average_rating"])
    return rows


def revenue_by_property(db: Session) -> List[Dict[str, Any]]:
    revenue = func.coalesce(func.sum(Booking.total_price), 0)
    query = (
        db.query(Property.id.label("property_id"), Property.name, revenue.label("revenue"))
        .outerjoin(Booking, (Booking.property_id == Property.id) & (Booking.status == "confirmed"))
        .group_by(Property.id, Property.name)
        .order_by(Property.id)
    )
    rows = _rows(query)
    for row in rows:
        row["revenue"] = float(row["revenue"])
    return rows


# ---------- Window functions ----------
def rank_properties_by_bookings(db: Session) -> List[Dict[str, Any]]:
    """Busiest first. ``rank`` leaves gaps after ties, ``row_number`` does not."""
    counts = (
        db.query(Property.id.label("property_id"), Property.name, func.count(Booking.id).label("booking_count"))
        .outerjoin(Booking, Booking.property_id == Property.id)
        .group_by(Property.id, Property.name)
        .subquery()
    )
    query = db.query(
        counts.c.property_id,
        counts.c.name,
        counts.c.booking_count,
        func.rank().over(order_by=counts.c.booking_count.desc()).label("rank"),
        func.row_number()
        .over(order_by=[counts.c.booking_count.desc(), counts.c.property_id])
        .label("row_number"),
    ).order_by(counts.c.booking_count.desc(), counts.c.property_id)
    return _rows(query)
