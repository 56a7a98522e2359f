from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .models import generate_id

# Field types that only affect layout and never carry a response
LAYOUT_FIELD_TYPES = ("heading", "paragraph", "divider")


class Form(Base):
    __tablename__ = "forms"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_id = Column(String(36), ForeignKey("events.id"), index=True, nullable=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    form_type = Column(String(30), default="general", nullable=False)
    status = Column(String(20), default="draft", nullable=False)  # draft, published, archived
    allow_multiple_submissions = Column(Boolean, default=False, nullable=False)
    requires_auth = Column(Boolean, default=False, nullable=False)
    submit_button_text = Column(String(100), default="Submit", nullable=False)
    success_message = Column(Text, default="Thank you for your submission!", nullable=True)
    redirect_url = Column(String(500), nullable=True)
    submission_deadline = Column(DateTime, nullable=True)
    max_submissions = Column(Integer, nullable=True)
    notify_on_submission = Column(Boolean, default=True, nullable=False)
    notification_emails = Column(JSON, default=list, nullable=False)
    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    fields = relationship(
        "FormField",
        back_populates="form",
        cascade="all, delete-orphan",
        order_by="FormField.sort_order",
    )
    submissions = relationship("FormSubmission", back_populates="form", cascade="all, delete-orphan")


class FormField(Base):
    __tablename__ = "form_fields"

    id = Column(String(36), primary_key=True, default=generate_id)
    form_id = Column(String(36), ForeignKey("forms.id"), index=True, nullable=False)
    field_type = Column(String(30), nullable=False)
    label = Column(String(500), nullable=False)
    placeholder = Column(String(255), nullable=True)
    help_text = Column(Text, nullable=True)
    is_required = Column(Boolean, default=False, nullable=False)
    min_length = Column(Integer, nullable=True)
    max_length = Column(Integer, nullable=True)
    min_value = Column(Float, nullable=True)
    max_value = Column(Float, nullable=True)
    pattern = Column(String(255), nullable=True)
    options = Column(JSON, default=list, nullable=False)  # [{"value": "...", "label": "..."}]
    sort_order = Column(Integer, default=0, nullable=False)
    width = Column(String(10), default="full", nullable=False)  # full, half

    form = relationship("Form", back_populates="fields")


class FormSubmission(Base):
    __tablename__ = "form_submissions"

    id = Column(String(36), primary_key=True, default=generate_id)
    form_id = Column(String(36), ForeignKey("forms.id"), index=True, nullable=False)
    submitter_email = Column(String(255), index=True, nullable=True)
    submitter_name = Column(String(255), nullable=True)
    responses = Column(JSON, default=dict, nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, reviewed, approved, rejected
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now())

    form = relationship("Form", back_populates="submissions")
