from contextlib import asynccontextmanager
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import crud
import models_pydantic as schemas
import queries
from database import get_db, init_db, transaction
from errors import (
    ConstraintViolation,
    ForeignKeyViolation,
    InvalidPasswordError,
    InvalidTransitionError,
    NotFoundError,
    UniqueViolation,
)
from logger import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Booking database API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------- Error mapping ----------
def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
def handle_not_found(request: Request, exc: NotFoundError):
    return _error(status.HTTP_404_NOT_FOUND, exc)


@app.exception_handler(InvalidTransitionError)
def handle_invalid_transition(request: Request, exc: InvalidTransitionError):
    return _error(status.HTTP_400_BAD_REQUEST, exc)


@app.exception_handler(InvalidPasswordError)
def handle_invalid_password(request: Request, exc: InvalidPasswordError):
    return _error(status.HTTP_400_BAD_REQUEST, exc)


@app.exception_handler(ConstraintViolation)
def handle_constraint_violation(request: Request, exc: ConstraintViolation):
    logger.warning("%s: %s %s", exc, request.method, request.url.path)
    if isinstance(exc, (UniqueViolation, ForeignKeyViolation)):
        return _error(status.HTTP_409_CONFLICT, exc)
    # check, not-null and unclassified violations
    return _error(status.HTTP_400_BAD_REQUEST, exc)


# ---------- User Endpoints ----------
@app.post("/users/", response_model=schemas.UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(user: schemas.UserCreate, db: Session = Depends(get_db)):
    with transaction(db):
        db_user = crud.create_user(db, user.model_dump())
    return schemas.UserResponse.model_validate(db_user)

@app.get("/users/", response_model=List[schemas.UserResponse])
def list_users(role: Optional[schemas.Role] = None, email: Optional[str] = None, db: Session = Depends(get_db)):
    return [schemas.UserResponse.model_validate(u) for u in crud.list_users(db, role=role, email=email)]

@app.get("/users/{user_id}", response_model=schemas.UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return schemas.UserResponse.model_validate(crud.get_user(db, user_id))

@app.put("/users/{user_id}", response_model=schemas.UserResponse)
def update_user(user_id: int, user_update: schemas.UserUpdate, db: Session = Depends(get_db)):
    with transaction(db):
        user = crud.update_user(db, user_id, user_update.model_dump(exclude_unset=True))
    return schemas.UserResponse.model_validate(user)

@app.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int, db: Session = Depends(get_db)):
    with transaction(db):
        crud.delete_user(db, user_id)


# ---------- Property Endpoints ----------
@app.post("/properties/", response_model=schemas.PropertyResponse, status_code=status.HTTP_201_CREATED)
def create_property(property: schemas.PropertyCreate, db: Session = Depends(get_db)):
    with transaction(db):
        db_property = crud.create_property(db, property.model_dump())
    return schemas.PropertyResponse.model_validate(db_property)

@app.get("/properties/", response_model=List[schemas.PropertyResponse])
def list_properties(
    host_id: Optional[int] = None,
    location: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    db: Session = Depends(get_db),
):
    props = crud.list_properties(db, host_id=host_id, location=location, min_price=min_price, max_price=max_price)
    return [schemas.PropertyResponse.model_validate(p) for p in props]

@app.get("/properties/{property_id}", response_model=schemas.PropertyResponse)
def get_property(property_id: int, db: Session = Depends(get_db)):
    return schemas.PropertyResponse.model_validate(crud.get_property(db, property_id))

@app.put("/properties/{property_id}", response_model=schemas.PropertyResponse)
def update_property(property_id: int, property_update: schemas.PropertyUpdate, db: Session = Depends(get_db)):
    with transaction(db):
        prop = crud.update_property(db, property_id, property_update.model_dump(exclude_unset=True))
    return schemas.PropertyResponse.model_validate(prop)

@app.delete("/properties/{property_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_property(property_id: int, db: Session = Depends(get_db)):
    with transaction(db):
        crud.delete_property(db, property_id)


# ---------- Booking Endpoints ----------
@app.post("/bookings/", response_model=schemas.BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(booking: schemas.BookingCreate, db: Session = Depends(get_db)):
    with transaction(db):
        db_booking = crud.create_booking(db, booking.model_dump())
    return schemas.BookingResponse.model_validate(db_booking)

@app.post("/bookings/checkout", response_model=schemas.CheckoutResponse, status_code=status.HTTP_201_CREATED)
def checkout(checkout_request: schemas.CheckoutRequest, db: Session = Depends(get_db)):
    booking, payment = crud.book_and_pay(db, checkout_request.booking.model_dump(), checkout_request.payment.model_dump())
    return schemas.CheckoutResponse(
        booking=schemas.BookingResponse.model_validate(booking),
        payment=schemas.PaymentResponse.model_validate(payment),
    )

@app.get("/bookings/", response_model=List[schemas.BookingResponse])
def list_bookings(
    user_id: Optional[int] = None,
    property_id: Optional[int] = None,
    status: Optional[schemas.BookingStatus] = None,
    start_after: Optional[date] = None,
    end_before: Optional[date] = None,
    db: Session = Depends(get_db),
):
    bookings = crud.list_bookings(
        db, user_id=user_id, property_id=property_id, status=status, start_after=start_after, end_before=end_before
    )
    return [schemas.BookingResponse.model_validate(b) for b in bookings]

@app.get("/bookings/{booking_id}", response_model=schemas.BookingResponse)
def get_booking(booking_id: int, db: Session = Depends(get_db)):
    return schemas.BookingResponse.model_validate(crud.get_booking(db, booking_id))

@app.put("/bookings/{booking_id}", response_model=schemas.BookingResponse)
def update_booking(booking_id: int, booking_update: schemas.BookingUpdate, db: Session = Depends(get_db)):
    with transaction(db):
        booking = crud.update_booking(db, booking_id, booking_update.model_dump(exclude_unset=True))
    return schemas.BookingResponse.model_validate(booking)

@app.post("/bookings/{booking_id}/status", response_model=schemas.BookingResponse)
def set_booking_status(booking_id: int, status_update: schemas.BookingStatusUpdate, db: Session = Depends(get_db)):
    with transaction(db):
        booking = crud.set_booking_status(db, booking_id, status_update.status)
    return schemas.BookingResponse.model_validate(booking)

@app.delete("/bookings/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_booking(booking_id: int, db: Session = Depends(get_db)):
    with transaction(db):
        crud.delete_booking(db, booking_id)


# ---------- Payment Endpoints ----------
@app.post("/payments/", response_model=schemas.PaymentResponse, status_code=status.HTTP_201_CREATED)
def create_payment(payment: schemas.PaymentCreate, db: Session = Depends(get_db)):
    with transaction(db):
        db_payment = crud.create_payment(db, payment.model_dump())
    return schemas.PaymentResponse.model_validate(db_payment)

@app.get("/payments/", response_model=List[schemas.PaymentResponse])
def list_payments(
    booking_id: Optional[int] = None,
    payment_method: Optional[schemas.PaymentMethod] = None,
    db: Session = Depends(get_db),
):
    payments = crud.list_payments(db, booking_id=booking_id, payment_method=payment_method)
    return [schemas.PaymentResponse.model_validate(p) for p in payments]

@app.get("/payments/{payment_id}", response_model=schemas.PaymentResponse)
def get_payment(payment_id: int, db: Session = Depends(get_db)):
    return schemas.PaymentResponse.model_validate(crud.get_payment(db, payment_id))

@app.put("/payments/{payment_id}", response_model=schemas.PaymentResponse)
def update_payment(payment_id: int, payment_update: schemas.PaymentUpdate, db: Session = Depends(get_db)):
    with transaction(db):
        payment = crud.update_payment(db, payment_id, payment_update.model_dump(exclude_unset=True))
    return schemas.PaymentResponse.model_validate(payment)

@app.delete("/payments/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_payment(payment_id: int, db: Session = Depends(get_db)):
    with transaction(db):
        crud.delete_payment(db, payment_id)


# ---------- Review Endpoints ----------
@app.post("/reviews/", response_model=schemas.ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(review: schemas.ReviewCreate, db: Session = Depends(get_db)):
    with transaction(db):
        db_review = crud.create_review(db, review.model_dump())
    return schemas.ReviewResponse.model_validate(db_review)

@app.get("/reviews/", response_model=List[schemas.ReviewResponse])
def list_reviews(
    property_id: Optional[int] = None,
    user_id: Optional[int] = None,
    min_rating: Optional[int] = None,
    db: Session = Depends(get_db),
):
    reviews = crud.list_reviews(db, property_id=property_id, user_id=user_id, min_rating=min_rating)
    return [schemas.ReviewResponse.model_validate(r) for r in reviews]

@app.get("/reviews/{review_id}", response_model=schemas.ReviewResponse)
def get_review(review_id: int, db: Session = Depends(get_db)):
    return schemas.ReviewResponse.model_validate(crud.get_review(db, review_id))

@app.put("/reviews/{review_id}", response_model=schemas.ReviewResponse)
def update_review(review_id: int, review_update: schemas.ReviewUpdate, db: Session = Depends(get_db)):
    with transaction(db):
        review = crud.update_review(db, review_id, review_update.model_dump(exclude_unset=True))
    return schemas.ReviewResponse.model_validate(review)

@app.delete("/reviews/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_review(review_id: int, db: Session = Depends(get_db)):
    with transaction(db):
        crud.delete_review(db, review_id)


# ---------- Message Endpoints ----------
@app.post("/messages/", response_model=schemas.MessageResponse, status_code=status.HTTP_201_CREATED)
def create_message(message: schemas.MessageCreate, db: Session = Depends(get_db)):
    with transaction(db):
        db_message = crud.create_message(db, message.model_dump())
    return schemas.MessageResponse.model_validate(db_message)

@app.get("/messages/", response_model=List[schemas.MessageResponse])
def list_messages(sender_id: Optional[int] = None, recipient_id: Optional[int] = None, db: Session = Depends(get_db)):
    messages = crud.list_messages(db, sender_id=sender_id, recipient_id=recipient_id)
    return [schemas.MessageResponse.model_validate(m) for m in messages]

@app.get("/messages/{message_id}", response_model=schemas.MessageResponse)
def get_message(message_id: int, db: Session = Depends(get_db)):
    return schemas.MessageResponse.model_validate(crud.get_message(db, message_id))

@app.put("/messages/{message_id}", response_model=schemas.MessageResponse)
def update_message(message_id: int, message_update: schemas.MessageUpdate, db: Session = Depends(get_db)):
    with transaction(db):
        message = crud.update_message(db, message_id, message_update.model_dump(exclude_unset=True))
    return schemas.MessageResponse.model_validate(message)

@app.delete("/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_message(message_id: int, db: Session = Depends(get_db)):
    with transaction(db):
        crud.delete_message(db, message_id)


# ---------- Reports ----------
REPORTS = {
    "bookings-with-guests": queries.bookings_with_guests,
    "properties-with-reviews": queries.properties_with_reviews,
    "users-and-bookings": queries.users_and_bookings,
    "booking-counts": queries.booking_counts_by_user,
    "average-ratings": queries.average_rating_by_property,
    "revenue": queries.revenue_by_property,
    "property-ranking": queries.rank_properties_by_bookings,
}

@app.get("/reports/top-rated", response_model=List[Dict[str, Any]])
def top_rated_properties(threshold: float = 4.0, db: Session = Depends(get_db)):
    return queries.properties_with_average_rating_above(db, threshold)

@app.get("/reports/frequent-guests", response_model=List[Dict[str, Any]])
def frequent_guests(count: int = 3, db: Session = Depends(get_db)):
    return queries.users_with_more_bookings_than(db, count)

@app.get("/reports/{name}", response_model=List[Dict[str, Any]])
def run_report(name: str, db: Session = Depends(get_db)):
    if name not in REPORTS:
        raise NotFoundError("Report", name)
    return REPORTS[name](db)
