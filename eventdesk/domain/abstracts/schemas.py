"""Abstract domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

PresentationType = Literal["oral", "poster", "video", "either"]
AcceptedAs = Literal["oral", "poster", "video"]
Decision = Literal["accepted", "rejected", "revision_requested", "under_review", "redirected"]
Recommendation = Literal["accept", "reject", "revise", "undecided"]


class AbstractCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    is_award_category: bool = False
    is_active: bool = True
    sort_order: int = 0


class AbstractCategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_award_category: Optional[bool] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class AbstractCategoryResponse(AbstractCategoryCreate):
    id: str
    event_id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AbstractSettingsUpdate(BaseModel):
    submission_opens_at: Optional[datetime] = None
    submission_deadline: Optional[datetime] = None
    word_limit: Optional[int] = Field(None, ge=1)
    max_submissions_per_person: Optional[int] = Field(None, ge=1)
    require_registration: Optional[bool] = None
    allowed_presentation_types: Optional[list[AcceptedAs]] = None
    review_enabled: Optional[bool] = None
    reviewers_per_abstract: Optional[int] = Field(None, ge=1)


class AbstractSettingsResponse(BaseModel):
    event_id: str
    submission_opens_at: Optional[datetime] = None
    submission_deadline: Optional[datetime] = None
    word_limit: int
    max_submissions_per_person: Optional[int] = None
    require_registration: bool
    allowed_presentation_types: list[str]
    review_enabled: bool
    reviewers_per_abstract: int

    class Config:
        from_attributes = True


class AbstractAuthorInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = None
    affiliation: Optional[str] = None
    is_presenting: bool = False


class AbstractSubmit(BaseModel):
    """Public submission; required fields are checked by the service so they answer 400"""

    title: Optional[str] = None
    abstract_text: Optional[str] = None
    keywords: list[str] = []
    presentation_type: PresentationType = "either"
    category_id: Optional[str] = None
    presenting_author_name: Optional[str] = None
    presenting_author_email: Optional[str] = None
    presenting_author_affiliation: Optional[str] = None
    presenting_author_phone: Optional[str] = None
    authors: list[AbstractAuthorInput] = []


class AbstractUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    abstract_text: Optional[str] = None
    keywords: Optional[list[str]] = None
    presentation_type: Optional[PresentationType] = None
    category_id: Optional[str] = None
    presenting_author_affiliation: Optional[str] = None
    presenting_author_phone: Optional[str] = None
    authors: Optional[list[AbstractAuthorInput]] = None
    # Anonymous edits must carry the presenting author's email
    author_email: Optional[str] = None


class AbstractWithdrawRequest(BaseModel):
    author_email: Optional[str] = None


class AbstractAuthorResponse(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    affiliation: Optional[str] = None
    author_order: int
    is_presenting: bool

    class Config:
        from_attributes = True


class ReviewCreate(BaseModel):
    reviewer_email: Optional[str] = None
    reviewer_name: Optional[str] = None
    score_originality: Any = None
    score_methodology: Any = None
    score_relevance: Any = None
    score_clarity: Any = None
    recommendation: Recommendation = "undecided"
    comments_to_author: Optional[str] = None
    comments_private: Optional[str] = None


class ReviewResponse(BaseModel):
    id: str
    abstract_id: str
    reviewer_email: str
    reviewer_name: Optional[str] = None
    score_originality: Optional[int] = None
    score_methodology: Optional[int] = None
    score_relevance: Optional[int] = None
    score_clarity: Optional[int] = None
    overall_score: Optional[float] = None
    recommendation: str
    comments_to_author: Optional[str] = None
    comments_private: Optional[str] = None
    reviewed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AbstractResponse(BaseModel):
    id: str
    abstract_number: str
    event_id: str
    category_id: Optional[str] = None
    title: str
    abstract_text: str
    keywords: list[str] = []
    presentation_type: str
    presenting_author_name: str
    presenting_author_email: str
    presenting_author_affiliation: Optional[str] = None
    presenting_author_phone: Optional[str] = None
    registration_id: Optional[str] = None
    status: str
    decision_notes: Optional[str] = None
    decision_date: Optional[datetime] = None
    decided_by: Optional[str] = None
    accepted_as: Optional[str] = None
    redirected_from_category_id: Optional[str] = None
    word_count: int
    submitted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AbstractDetailResponse(AbstractResponse):
    authors: list[AbstractAuthorResponse] = []
    reviews: list[ReviewResponse] = []


class AbstractListItem(AbstractResponse):
    category_name: Optional[str] = None
    review_count: int = 0
    average_score: Optional[float] = None


class AbstractPage(BaseModel):
    data: list[AbstractListItem]
    total: int
    page: int
    limit: int
    total_pages: int


class DecisionRequest(BaseModel):
    decision: Decision
    notes: Optional[str] = None
    accepted_as: Optional[AcceptedAs] = None


class BulkDecisionRequest(DecisionRequest):
    abstract_ids: list[str] = Field(..., min_length=1)


class BulkDecisionResult(BaseModel):
    updated: int
    failed: int
    errors: list[dict] = []
