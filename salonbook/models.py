"""Database models for the salon scheduling backend."""
from __future__ import annotations

from datetime import datetime, timezone

from .extensions import db

SCHEDULING_STATUSES = ("pending", "confirmed", "completed", "cancelled")
REMINDER_TYPES = ("24h", "1h")


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class User(db.Model):
    __tablename__ = "users"

    user_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    role = db.Column(
        db.Enum(
            "admin",
            "owner",
            "employee",
            name="user_role",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="owner",
    )
    phone = db.Column(db.String(30))
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    establishments = db.relationship("Establishment", back_populates="owner", lazy="dynamic")

    def to_dict_basic(self) -> dict[str, object]:
        return {
            "id": self.user_id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "phone": self.phone,
        }


class Establishment(db.Model):
    """A salon. Every establishment has exactly one owner."""

    __tablename__ = "establishments"

    establishment_id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=True)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    owner = db.relationship("User", back_populates="establishments")
    services = db.relationship("Service", back_populates="establishment", lazy="dynamic")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.establishment_id,
            "name": self.name,
            "description": self.description,
            "owner_id": self.owner_id,
        }


class Service(db.Model):
    """Services offered by an establishment."""

    __tablename__ = "services"

    service_id = db.Column(db.Integer, primary_key=True)
    establishment_id = db.Column(
        db.Integer, db.ForeignKey("establishments.establishment_id"), nullable=False
    )
    # Employee assigned to the service, if any. Drives per-employee slot conflicts.
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=True)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    duration_minutes = db.Column(db.Integer, nullable=False, default=60)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    establishment = db.relationship("Establishment", back_populates="services")
    user = db.relationship("User")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.service_id,
            "establishment_id": self.establishment_id,
            "user_id": self.user_id,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "duration_minutes": self.duration_minutes,
        }


class Scheduling(db.Model):
    """A booked slot. Date and time are business-local wall-clock values."""

    __tablename__ = "schedulings"
    __table_args__ = (
        db.Index("ix_schedulings_date_status_time", "scheduled_date", "status", "scheduled_time"),
    )

    scheduling_id = db.Column(db.Integer, primary_key=True)
    scheduled_date = db.Column(db.Date, nullable=False)
    scheduled_time = db.Column(db.Time, nullable=False)
    status = db.Column(
        db.Enum(
            *SCHEDULING_STATUSES,
            name="scheduling_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        default="pending",
        server_default="pending",
    )
    service_id = db.Column(db.Integer, db.ForeignKey("services.service_id"), nullable=False)
    establishment_id = db.Column(
        db.Integer, db.ForeignKey("establishments.establishment_id"), nullable=True
    )
    client_name = db.Column(db.String(255), nullable=False)
    client_email = db.Column(db.String(255))
    client_phone = db.Column(db.String(30))
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    service = db.relationship("Service")
    establishment = db.relationship("Establishment")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.scheduling_id,
            "scheduled_date": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "scheduled_time": self.scheduled_time.strftime("%H:%M") if self.scheduled_time else None,
            "status": self.status,
            "service_id": self.service_id,
            "service": {
                "id": self.service.service_id,
                "name": self.service.name,
                "establishment_id": self.service.establishment_id,
            } if self.service else None,
            "establishment_id": self.establishment_id,
            "establishment": {
                "id": self.establishment.establishment_id,
                "name": self.establishment.name,
                "owner_id": self.establishment.owner_id,
            } if self.establishment else None,
            "client_name": self.client_name,
            "client_email": self.client_email,
            "client_phone": self.client_phone,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class Notification(db.Model):
    """In-app copy of every notice sent to a user."""

    __tablename__ = "notifications"

    notification_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False)
    scheduling_id = db.Column(
        db.Integer, db.ForeignKey("schedulings.scheduling_id"), nullable=True
    )
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    notification_type = db.Column(
        db.Enum(
            "scheduling_confirmation",
            "scheduling_status_changed",
            "scheduling_reminder",
            name="notification_type",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
    )
    is_read = db.Column(db.Boolean, nullable=False, default=False, server_default="0")
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    user = db.relationship("User")
    scheduling = db.relationship("Scheduling")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.notification_id,
            "user_id": self.user_id,
            "scheduling_id": self.scheduling_id,
            "title": self.title,
            "message": self.message,
            "notification_type": self.notification_type,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class ReminderDelivery(db.Model):
    """Ledger of reminders already sent, one row per scheduling and lead time."""

    __tablename__ = "reminder_deliveries"
    __table_args__ = (
        db.UniqueConstraint("scheduling_id", "reminder_type", name="uq_reminder_delivery"),
    )

    delivery_id = db.Column(db.Integer, primary_key=True)
    scheduling_id = db.Column(
        db.Integer, db.ForeignKey("schedulings.scheduling_id"), nullable=False
    )
    reminder_type = db.Column(
        db.Enum(
            *REMINDER_TYPES,
            name="reminder_type",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
    )
    recipient_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False)
    sent_at = db.Column(db.DateTime, nullable=False, default=utc_now)


class SweepLease(db.Model):
    """Grants one sweep run exclusive ownership of a reminder type."""

    __tablename__ = "sweep_leases"

    reminder_type = db.Column(db.String(8), primary_key=True)
    holder = db.Column(db.String(64), nullable=False)
    acquired_at = db.Column(db.DateTime, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
