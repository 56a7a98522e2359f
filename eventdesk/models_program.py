from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text, Time
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .models import generate_id


class ProgramSession(Base):
    __tablename__ = "program_sessions"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_id = Column(String(36), ForeignKey("events.id"), index=True, nullable=False)
    session_name = Column(String(500), nullable=False)
    session_type = Column(String(30), default="lecture", nullable=False)  # lecture, panel, workshop, keynote, break, other
    session_date = Column(Date, nullable=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    hall = Column(String(255), nullable=True)
    # Comma-separated faculty names as they appear in the printed program
    speakers = Column(Text, nullable=True)
    chairpersons = Column(Text, nullable=True)
    moderators = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    track = Column(String(255), nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    assignments = relationship(
        "FacultyAssignment", back_populates="session", cascade="all, delete-orphan"
    )


class FacultyAssignment(Base):
    __tablename__ = "faculty_assignments"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_id = Column(String(36), ForeignKey("events.id"), index=True, nullable=False)
    session_id = Column(String(36), ForeignKey("program_sessions.id"), index=True, nullable=True)
    faculty_name = Column(String(255), nullable=False)
    faculty_email = Column(String(255), index=True, nullable=True)
    faculty_phone = Column(String(50), nullable=True)
    role = Column(String(30), default="speaker", nullable=False)  # speaker, chairperson, moderator, panelist
    status = Column(String(30), default="pending", nullable=False)
    invitation_token = Column(String(64), unique=True, index=True, nullable=False)
    invitation_sent_at = Column(DateTime, nullable=True)
    reminder_count = Column(Integer, default=0, nullable=False)
    last_reminder_at = Column(DateTime, nullable=True)
    responded_at = Column(DateTime, nullable=True)
    response_notes = Column(Text, nullable=True)
    change_request_details = Column(Text, nullable=True)
    topic_title = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    session = relationship("ProgramSession", back_populates="assignments")


class TravelBooking(Base):
    __tablename__ = "travel_bookings"

    id = Column(String(36), primary_key=True, default=generate_id)
    registration_id = Column(
        String(36), ForeignKey("registrations.id"), unique=True, index=True, nullable=False
    )

    # Requested by the guest
    mode = Column(String(20), default="flight", nullable=False)  # flight, train, self
    arrival_date = Column(Date, nullable=True)
    departure_date = Column(Date, nullable=True)
    from_city = Column(String(100), nullable=True)
    id_proof_submitted = Column(Boolean, default=False, nullable=False)
    hotel_required = Column(Boolean, default=False, nullable=False)
    pickup_required = Column(Boolean, default=False, nullable=False)
    drop_required = Column(Boolean, default=False, nullable=False)

    # Booked by the travel desk
    onward_status = Column(String(20), nullable=True)  # pending, booked, confirmed, cancelled
    onward_pnr = Column(String(50), nullable=True)
    onward_carrier = Column(String(100), nullable=True)
    onward_number = Column(String(50), nullable=True)
    onward_from = Column(String(100), nullable=True)
    onward_to = Column(String(100), nullable=True)
    onward_departure = Column(DateTime, nullable=True)
    onward_arrival = Column(DateTime, nullable=True)
    onward_cost = Column(Float, nullable=True)

    return_status = Column(String(20), nullable=True)
    return_pnr = Column(String(50), nullable=True)
    return_carrier = Column(String(100), nullable=True)
    return_number = Column(String(50), nullable=True)
    return_from = Column(String(100), nullable=True)
    return_to = Column(String(100), nullable=True)
    return_departure = Column(DateTime, nullable=True)
    return_arrival = Column(DateTime, nullable=True)
    return_cost = Column(Float, nullable=True)

    hotel_status = Column(String(20), nullable=True)
    hotel_name = Column(String(255), nullable=True)
    hotel_address = Column(Text, nullable=True)
    hotel_confirmation = Column(String(100), nullable=True)
    hotel_checkin = Column(Date, nullable=True)
    hotel_checkout = Column(Date, nullable=True)
    hotel_cost = Column(Float, nullable=True)

    pickup_details = Column(Text, nullable=True)
    drop_details = Column(Text, nullable=True)
    voucher_sent_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    registration = relationship("Registration", back_populates="travel")
