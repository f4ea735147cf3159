from sqlalchemy import (
    Column, Integer, String, Numeric, Date, DateTime, ForeignKey, Text, CheckConstraint, func
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

USER_ID_FK = "users.id"
PROPERTY_ID_FK = "properties.id"
BOOKING_ID_FK = "bookings.id"

USER_ROLES = ("guest", "host", "admin")
BOOKING_STATUSES = ("pending", "confirmed", "canceled")
PAYMENT_METHODS = ("credit_card", "paypal", "stripe")


def _in_list(column, values):
    return "{} IN ({})".format(column, ", ".join("'{}'".format(v) for v in values))


# Money columns come back as float; SQLite has no native decimal type.
Money = Numeric(10, 2, asdecimal=False)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(_in_list("role", USER_ROLES), name="ck_users_role"),
    )

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    phone_number = Column(String(30), nullable=True)
    role = Column(String(10), nullable=False, default="guest")
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    # passive_deletes="all" leaves dependent rows alone so the engine's
    # ON DELETE RESTRICT decides whether the delete may proceed
    properties = relationship("Property", back_populates="host", passive_deletes="all")
    bookings = relationship("Booking", back_populates="user", passive_deletes="all")
    reviews = relationship("Review", back_populates="user", passive_deletes="all")
    sent_messages = relationship(
        "Message", foreign_keys="Message.sender_id", back_populates="sender", passive_deletes="all"
    )
    received_messages = relationship(
        "Message", foreign_keys="Message.recipient_id", back_populates="recipient", passive_deletes="all"
    )


class Property(Base):
    __tablename__ = "properties"
    __table_args__ = (
        CheckConstraint("price_per_night >= 0", name="ck_properties_price"),
    )

    id = Column(Integer, primary_key=True, index=True)
    host_id = Column(Integer, ForeignKey(USER_ID_FK, ondelete="RESTRICT"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    location = Column(String(255), nullable=False)
    price_per_night = Column(Money, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    host = relationship("User", back_populates="properties")
    bookings = relationship("Booking", back_populates="property", passive_deletes="all")
    reviews = relationship("Review", back_populates="property", passive_deletes="all")


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_bookings_dates"),
        CheckConstraint("total_price >= 0", name="ck_bookings_total_price"),
        CheckConstraint(_in_list("status", BOOKING_STATUSES), name="ck_bookings_status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey(PROPERTY_ID_FK, ondelete="RESTRICT"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey(USER_ID_FK, ondelete="RESTRICT"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    total_price = Column(Money, nullable=False)
    status = Column(String(10), nullable=False, default="pending")
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    property = relationship("Property", back_populates="bookings")
    user = relationship("User", back_populates="bookings")
    payments = relationship("Payment", back_populates="booking", passive_deletes="all")


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_payments_amount"),
        CheckConstraint(_in_list("payment_method", PAYMENT_METHODS), name="ck_payments_method"),
    )

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey(BOOKING_ID_FK, ondelete="RESTRICT"), nullable=False, index=True)
    amount = Column(Money, nullable=False)
    payment_date = Column(DateTime, nullable=False, server_default=func.now())
    payment_method = Column(String(20), nullable=False)

    booking = relationship("Booking", back_populates="payments")


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating"),
    )

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey(PROPERTY_ID_FK, ondelete="RESTRICT"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey(USER_ID_FK, ondelete="RESTRICT"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    property = relationship("Property", back_populates="reviews")
    user = relationship("User", back_populates="reviews")


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey(USER_ID_FK, ondelete="RESTRICT"), nullable=False, index=True)
    recipient_id = Column(Integer, ForeignKey(USER_ID_FK, ondelete="RESTRICT"), nullable=False, index=True)
    message_body = Column(Text, nullable=False)
    sent_at = Column(DateTime, nullable=False, server_default=func.now())

    sender = relationship("User", foreign_keys=[sender_id], back_populates="sent_messages")
    recipient = relationship("User", foreign_keys=[recipient_id], back_populates="received_messages")
