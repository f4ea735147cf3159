"""
Populate the database with a small sample data set.

    python seed.py
"""

from datetime import date

from sqlalchemy.orm import Session

import crud
from database import SessionLocal, init_db, transaction
from logger import get_logger

logger = get_logger(__name__)

USERS = [
    {"first_name": "Jane", "last_name": "Smith", "email": "jane.smith@example.com",
     "phone_number": "0987654321", "role": "host", "password": "host-password-1"},
    {"first_name": "Omar", "last_name": "Haddad", "email": "omar.haddad@example.com",
     "phone_number": None, "role": "host", "password": "host-password-2"},
    {"first_name": "John", "last_name": "Doe", "email": "john.doe@example.com",
     "phone_number": "1234567890", "role": "guest", "password": "guest-password-1"},
    {"first_name": "Amina", "last_name": "Okafor", "email": "amina.okafor@example.com",
     "phone_number": "5551234567", "role": "guest", "password": "guest-password-2"},
    {"first_name": "Ada", "last_name": "Admin", "email": "admin@example.com",
     "phone_number": None, "role": "admin", "password": "admin-password-1"},
]

# host index into USERS
PROPERTIES = [
    (0, {"name": "Cozy Cottage", "description": "A cozy cottage in the woods.",
         "location": "Forest", "price_per_night": 120.00}),
    (0, {"name": "Beach House", "description": "Steps from the sand.",
         "location": "Mombasa", "price_per_night": 250.00}),
    (1, {"name": "City Loft", "description": "Top floor, great light.",
         "location": "Nairobi", "price_per_night": 95.50}),
]

# (property index, guest index, start, end, status, payment method or None)
BOOKINGS = [
    (0, 2, date(2025, 3, 1), date(2025, 3, 4), "confirmed", "credit_card"),
    (1, 2, date(2025, 4, 10), date(2025, 4, 12), "pending", None),
    (2, 3, date(2025, 5, 2), date(2025, 5, 6), "confirmed", "paypal"),
    (0, 3, date(2025, 6, 20), date(2025, 6, 21), "canceled", None),
]

# (property index, guest index, rating, comment)
REVIEWS = [
    (0, 2, 5, "Quiet and spotless."),
    (2, 3, 4, "Great location, a little noisy."),
    (0, 3, 4, "Would stay again."),
]

# (sender index, recipient index, body)
MESSAGES = [
    (2, 0, "Is early check-in possible?"),
    (0, 2, "Yes, from 11am."),
    (3, 1, "Is there parking at the loft?"),
]


def seed(db: Session) -> dict:
    """Insert the sample data in one transaction; returns the row counts."""
    with transaction(db):
        users = [crud.create_user(db, data) for data in USERS]
        properties = [
            crud.create_property(db, dict(data, host_id=users[host].id)) for host, data in PROPERTIES
        ]
        bookings = []
        payments = []
        for prop, guest, start, end, status, method in BOOKINGS:
            nights = (end - start).days
            total = round(nights * properties[prop].price_per_night, 2)
            booking = crud.create_booking(db, {
                "property_id": properties[prop].id,
                "user_id": users[guest].id,
                "start_date": start,
                "end_date": end,
                "total_price": total,
                "status": status,
            })
            bookings.append(booking)
            if method is not None:
                payments.append(crud.create_payment(db, {
                    "booking_id": booking.id, "amount": total, "payment_method": method,
                }))
        reviews = [
            crud.create_review(db, {
                "property_id": properties[prop].id, "user_id": users[guest].id,
                "rating": rating, "comment": comment,
            })
            for prop, guest, rating, comment in REVIEWS
        ]
        messages = [
            crud.create_message(db, {
                "sender_id": users[sender].id, "recipient_id": users[recipient].id, "message_body": body,
            })
            for sender, recipient, body in MESSAGES
        ]
    counts = {
        "users": len(users),
        "properties": len(properties),
        "bookings": len(bookings),
        "payments": len(payments),
        "reviews": len(reviews),
        "messages": len(messages),
    }
    logger.info("Seeded %s", ", ".join(f"{n} {name}" for name, n in counts.items()))
    return counts


if __name__ == "__main__":
    init_db()
    db = SessionLocal()
    try:
        seed(db)
    finally:
        db.close()
