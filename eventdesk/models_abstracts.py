from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .models import generate_id


class AbstractCategory(Base):
    __tablename__ = "abstract_categories"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_id = Column(String(36), ForeignKey("events.id"), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_award_category = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AbstractSettings(Base):
    __tablename__ = "abstract_settings"

    id = Column(String(36), primary_key=True, default=generate_id)
    event_id = Column(String(36), ForeignKey("events.id"), unique=True, nullable=False)
    submission_opens_at = Column(DateTime, nullable=True)
    submission_deadline = Column(DateTime, nullable=True)
    word_limit = Column(Integer, default=300, nullable=False)
    max_submissions_per_person = Column(Integer, nullable=True)
    require_registration = Column(Boolean, default=False, nullable=False)
    allowed_presentation_types = Column(JSON, default=lambda: ["oral", "poster"], nullable=False)
    review_enabled = Column(Boolean, default=True, nullable=False)
    reviewers_per_abstract = Column(Integer, default=2, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class Abstract(Base):
    __tablename__ = "abstracts"

    id = Column(String(36), primary_key=True, default=generate_id)
    abstract_number = Column(String(50), unique=True, index=True, nullable=False)
    event_id = Column(String(36), ForeignKey("events.id"), index=True, nullable=False)
    category_id = Column(String(36), ForeignKey("abstract_categories.id"), nullable=True)
    title = Column(String(500), nullable=False)
    abstract_text = Column(Text, nullable=False)
    keywords = Column(JSON, default=list, nullable=False)
    presentation_type = Column(String(20), default="either", nullable=False)  # oral, poster, video, either
    presenting_author_name = Column(String(255), nullable=False)
    presenting_author_email = Column(String(255), index=True, nullable=False)
    presenting_author_affiliation = Column(String(255), nullable=True)
    presenting_author_phone = Column(String(50), nullable=True)
    registration_id = Column(String(36), ForeignKey("registrations.id"), nullable=True)
    status = Column(String(30), default="submitted", nullable=False)
    decision_notes = Column(Text, nullable=True)
    decision_date = Column(DateTime, nullable=True)
    decided_by = Column(String(255), nullable=True)
    accepted_as = Column(String(20), nullable=True)  # oral, poster, video
    redirected_from_category_id = Column(String(36), nullable=True)
    word_count = Column(Integer, default=0, nullable=False)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    category = relationship("AbstractCategory")
    authors = relationship(
        "AbstractAuthor",
        back_populates="abstract",
        cascade="all, delete-orphan",
        order_by="AbstractAuthor.author_order",
    )
    reviews = relationship("AbstractReview", back_populates="abstract", cascade="all, delete-orphan")


class AbstractAuthor(Base):
    __tablename__ = "abstract_authors"

    id = Column(String(36), primary_key=True, default=generate_id)
    abstract_id = Column(String(36), ForeignKey("abstracts.id"), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    affiliation = Column(String(255), nullable=True)
    author_order = Column(Integer, default=1, nullable=False)
    is_presenting = Column(Boolean, default=False, nullable=False)

    abstract = relationship("Abstract", back_populates="authors")


class AbstractReview(Base):
    __tablename__ = "abstract_reviews"

    id = Column(String(36), primary_key=True, default=generate_id)
    abstract_id = Column(String(36), ForeignKey("abstracts.id"), index=True, nullable=False)
    reviewer_email = Column(String(255), nullable=False)
    reviewer_name = Column(String(255), nullable=True)
    score_originality = Column(Integer, nullable=True)
    score_methodology = Column(Integer, nullable=True)
    score_relevance = Column(Integer, nullable=True)
    score_clarity = Column(Integer, nullable=True)
    overall_score = Column(Float, nullable=True)
    recommendation = Column(String(20), default="undecided", nullable=False)  # accept, reject, revise, undecided
    comments_to_author = Column(Text, nullable=True)
    comments_private = Column(Text, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    abstract = relationship("Abstract", back_populates="reviews")
