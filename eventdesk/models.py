import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate a UUID primary key"""
    return str(uuid.uuid4())


ADMIN_ROLES = ("super_admin", "admin")
TEAM_ROLES = ("super_admin", "admin", "event_admin", "staff")


class TeamMember(Base):
    __tablename__ = "team_members"

    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    role = Column(String(50), default="staff", nullable=False)  # super_admin, admin, event_admin, staff
    event_ids = Column(JSON, default=list, nullable=False)  # Empty list = access to all events
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def can_manage_team(self) -> bool:
        return self.is_admin

    def can_access_event(self, event_id: str) -> bool:
        if self.is_admin or not self.event_ids:
            return True
        return event_id in self.event_ids


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    short_name = Column(String(100), nullable=True)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    event_type = Column(String(50), default="conference", nullable=False)
    status = Column(String(50), default="draft", nullable=False)  # draft, setup, active, completed, cancelled
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    venue_name = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    country = Column(String(100), default="India", nullable=True)
    timezone = Column(String(64), default="Asia/Kolkata", nullable=False)
    registration_open = Column(Boolean, default=True, nullable=False)
    max_attendees = Column(Integer, nullable=True)
    contact_email = Column(String(255), nullable=True)
    logo_url = Column(String(500), nullable=True)
    created_by = Column(String(36), ForeignKey("team_members.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    settings = relationship(
        "EventSettings", back_populates="event", uselist=False, cascade="all, delete-orphan"
    )
    ticket_types = relationship(
        "TicketType", back_populates="event", cascade="all, delete-orphan"
    )
    addons = relationship("Addon", back_populates="event", cascade="all, delete-orphan")
    registrations = relationship(
        "Registration", back_populates="event", cascade="all, delete-orphan"
    )


class EventSettings(Base):
    __tablename__ = "event_settings"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_id = Column(String(36), ForeignKey("events.id"), unique=True, nullable=False)
    customize_registration_id = Column(Boolean, default=False, nullable=False)
    registration_prefix = Column(String(50), nullable=True)
    registration_start_number = Column(Integer, default=1, nullable=False)
    registration_suffix = Column(String(50), nullable=True)
    current_registration_number = Column(Integer, default=0, nullable=False)
    allow_multiple_ticket_types = Column(Boolean, default=False, nullable=False)
    require_approval = Column(Boolean, default=False, nullable=False)
    webhook_url = Column(String(500), nullable=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    event = relationship("Event", back_populates="settings")


class TicketType(Base):
    __tablename__ = "ticket_types"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_id = Column(String(36), ForeignKey("events.id"), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, default=0, nullable=False)
    currency = Column(String(3), default="INR", nullable=False)
    quantity_total = Column(Integer, nullable=True)  # None = unlimited
    quantity_sold = Column(Integer, default=0, nullable=False)
    min_per_order = Column(Integer, default=1, nullable=False)
    max_per_order = Column(Integer, default=10, nullable=False)
    sale_start_date = Column(DateTime, nullable=True)
    sale_end_date = Column(DateTime, nullable=True)
    status = Column(String(20), default="draft", nullable=False)  # draft, active, paused, sold_out, expired
    is_hidden = Column(Boolean, default=False, nullable=False)
    requires_approval = Column(Boolean, default=False, nullable=False)
    tax_percentage = Column(Float, default=18, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    event = relationship("Event", back_populates="ticket_types")


class DiscountCode(Base):
    __tablename__ = "discount_codes"
    __table_args__ = (UniqueConstraint("event_id", "code", name="uq_discount_code_event"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    event_id = Column(String(36), ForeignKey("events.id"), index=True, nullable=False)
    code = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    discount_type = Column(String(20), default="percentage", nullable=False)  # percentage, fixed
    discount_value = Column(Float, nullable=False)
    max_discount_amount = Column(Float, nullable=True)
    max_uses = Column(Integer, nullable=True)
    current_uses = Column(Integer, default=0, nullable=False)
    valid_from = Column(DateTime, nullable=True)
    valid_until = Column(DateTime, nullable=True)
    applies_to_ticket_ids = Column(JSON, default=list, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Addon(Base):
    __tablename__ = "addons"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_id = Column(String(36), ForeignKey("events.id"), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, default=0, nullable=False)
    max_quantity = Column(Integer, default=1, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    event = relationship("Event", back_populates="addons")


class Registration(Base):
    __tablename__ = "registrations"

    id = Column(String(36), primary_key=True, default=generate_id)
    registration_number = Column(String(100), unique=True, index=True, nullable=False)
    event_id = Column(String(36), ForeignKey("events.id"), index=True, nullable=False)
    ticket_type_id = Column(String(36), ForeignKey("ticket_types.id"), nullable=True)
    attendee_name = Column(String(255), nullable=True)
    attendee_email = Column(String(255), index=True, nullable=False)
    attendee_phone = Column(String(50), nullable=True)
    attendee_institution = Column(String(255), nullable=True)
    attendee_designation = Column(String(255), nullable=True)
    attendee_city = Column(String(100), nullable=True)
    attendee_state = Column(String(100), nullable=True)
    attendee_country = Column(String(100), nullable=True)
    quantity = Column(Integer, default=1, nullable=False)
    unit_price = Column(Float, default=0, nullable=False)
    tax_amount = Column(Float, default=0, nullable=False)
    discount_amount = Column(Float, default=0, nullable=False)
    total_amount = Column(Float, default=0, nullable=False)
    discount_code_id = Column(String(36), ForeignKey("discount_codes.id"), nullable=True)
    status = Column(String(20), default="pending", nullable=False)  # pending, confirmed, cancelled, refunded, waitlisted
    payment_status = Column(String(20), default="pending", nullable=False)  # pending, completed, failed, refunded, free
    payment_id = Column(String(36), nullable=True)
    checkin_token = Column(String(64), unique=True, index=True, default=lambda: uuid.uuid4().hex)
    custom_fields = Column(JSON, default=dict, nullable=False)
    notes = Column(Text, nullable=True)
    confirmed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    event = relationship("Event", back_populates="registrations")
    ticket_type = relationship("TicketType")
    addons = relationship(
        "RegistrationAddon", back_populates="registration", cascade="all, delete-orphan"
    )
    travel = relationship(
        "TravelBooking", back_populates="registration", uselist=False, cascade="all, delete-orphan"
    )


class RegistrationAddon(Base):
    __tablename__ = "registration_addons"

    id = Column(String(36), primary_key=True, default=generate_id)
    registration_id = Column(String(36), ForeignKey("registrations.id"), index=True, nullable=False)
    addon_id = Column(String(36), ForeignKey("addons.id"), nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    unit_price = Column(Float, default=0, nullable=False)
    total_price = Column(Float, default=0, nullable=False)

    registration = relationship("Registration", back_populates="addons")
    addon = relationship("Addon")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=generate_id)
    payment_number = Column(String(64), unique=True, index=True, nullable=False)
    event_id = Column(String(36), ForeignKey("events.id"), index=True, nullable=False)
    registration_id = Column(String(36), ForeignKey("registrations.id"), nullable=True)
    amount = Column(Float, default=0, nullable=False)
    currency = Column(String(3), default="INR", nullable=False)
    payment_method = Column(String(30), default="online", nullable=False)  # free, cash, bank_transfer, online, razorpay
    status = Column(String(20), default="pending", nullable=False)  # pending, completed, failed, refunded
    reference = Column(String(100), nullable=True)  # gateway payment id or bank transfer UTR
    notes = Column(Text, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class CheckinList(Base):
    __tablename__ = "checkin_lists"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_id = Column(String(36), ForeignKey("events.id"), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    ticket_type_ids = Column(JSON, default=list, nullable=False)  # Empty = all tickets
    addon_ids = Column(JSON, default=list, nullable=False)  # Empty = no addon restriction
    starts_at = Column(DateTime, nullable=True)
    ends_at = Column(DateTime, nullable=True)
    allow_multiple_checkins = Column(Boolean, default=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    records = relationship("CheckinRecord", back_populates="checkin_list", cascade="all, delete-orphan")


class CheckinRecord(Base):
    __tablename__ = "checkin_records"
    __table_args__ = (
        UniqueConstraint("checkin_list_id", "registration_id", name="uq_checkin_list_registration"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    checkin_list_id = Column(String(36), ForeignKey("checkin_lists.id"), index=True, nullable=False)
    registration_id = Column(String(36), ForeignKey("registrations.id"), index=True, nullable=False)
    checked_in_at = Column(DateTime, nullable=True)
    checked_in_by = Column(String(255), nullable=True)
    checked_out_at = Column(DateTime, nullable=True)
    checked_out_by = Column(String(255), nullable=True)

    checkin_list = relationship("CheckinList", back_populates="records")
    registration = relationship("Registration")

    @property
    def is_checked_in(self) -> bool:
        return self.checked_in_at is not None and self.checked_out_at is None


class BadgeTemplate(Base):
    __tablename__ = "badge_templates"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_id = Column(String(36), ForeignKey("events.id"), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    size = Column(String(20), default="4x3", nullable=False)  # 4x3, 3x4, 4x6, 3.5x2, A6
    template_data = Column(JSON, default=dict, nullable=False)  # {"elements": [...]}
    ticket_type_ids = Column(JSON, default=list, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class CertificateTemplate(Base):
    __tablename__ = "certificate_templates"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_id = Column(String(36), ForeignKey("events.id"), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    size = Column(String(30), default="A4-landscape", nullable=False)
    background_url = Column(String(500), nullable=True)
    template_data = Column(JSON, default=dict, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
