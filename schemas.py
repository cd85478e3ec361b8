"""
Database Schemas

Pydantic models for the content types stored in MongoDB. Each model
validates the attributes of one collection; relations are stored as the
string id of the related document and expanded on read through `populate`.

Collection names:
- Article -> "article"
- Casino -> "casino-review"
- Slot -> "slot"
- Bonus -> "bonus"
- Comment -> "comment"
- Category -> "category"
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator

from database import naive_utc

UTCDateTime = Annotated[datetime, AfterValidator(naive_utc)]


def coerce_string_list(value: Any) -> List[str]:
    """Normalize list-ish content to a list of non-empty strings.

    Older entries store pros/cons as one newline separated string, newer
    ones as a JSON list.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = [str(item).strip() for item in value if item is not None]
        return [item for item in items if item]
    if isinstance(value, str):
        return [line.strip() for line in value.splitlines() if line.strip()]
    return [str(value)]


class Volatility(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BonusType(str, Enum):
    WELCOME = "welcome"
    DEPOSIT = "deposit"
    NO_DEPOSIT = "no-deposit"
    FREE_SPINS = "free-spins"
    CASHBACK = "cashback"
    RELOAD = "reload"


class CommentStatus(str, Enum):
    PENDING = "pending"
    PUBLISHED = "published"
    REJECTED = "rejected"


class Media(BaseModel):
    """Embedded media reference (logo, cover image, ...)"""
    url: str
    alternativeText: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


class ContentBase(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    locale: Optional[str] = Field(None, description="Locale code, e.g. it, en, uk")
    publishedAt: Optional[UTCDateTime] = Field(None, description="Null means draft")
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None


class Category(ContentBase):
    name: str
    slug: str = Field(..., description="URL-friendly unique identifier")
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[Media] = None
    is_featured: bool = False
    sort_order: int = 0


class Article(ContentBase):
    title: str
    slug: str = Field(..., description="URL-friendly unique identifier")
    content: str = ""
    excerpt: Optional[str] = None
    author: Optional[str] = None
    category: Optional[str] = Field(None, description="Category id")
    tags: List[str] = Field(default_factory=list)
    reading_time: Optional[int] = Field(None, ge=0)
    is_featured: bool = False
    view_count: int = Field(0, ge=0)
    preview_image: Optional[Media] = None


class Casino(ContentBase):
    """Casino review"""
    name: str
    slug: str = Field(..., description="URL-friendly unique identifier")
    description: Optional[str] = None
    shortDescription: Optional[str] = None
    logo: Optional[Media] = None
    rating: float = Field(0, ge=0, le=10, description="Editorial rating (0-10)")
    bonus_text: Optional[str] = Field(None, description="Headline bonus offer text")
    rtp: Optional[float] = Field(None, ge=0, le=100)
    payout_speed: Optional[str] = None
    games_count: Optional[int] = Field(None, ge=0)
    established_date: Optional[int] = None
    detailed_review: Optional[str] = None
    url: Optional[str] = Field(None, description="Outbound affiliate URL")
    pros: List[str] = Field(default_factory=list, description="Pros list shown on details page")
    cons: List[str] = Field(default_factory=list, description="Cons list shown on details page")
    license: Optional[str] = None
    languages: List[str] = Field(default_factory=list)
    currencies: List[str] = Field(default_factory=list)
    payment_methods: List[str] = Field(default_factory=list)

    @field_validator("pros", "cons", mode="before")
    @classmethod
    def _split_lines(cls, value):
        return coerce_string_list(value)


class Slot(ContentBase):
    name: str
    slug: str = Field(..., description="URL-friendly unique identifier")
    description: Optional[str] = None
    provider: Optional[str] = None
    rating: float = Field(0, ge=0, le=10)
    cover_image: Optional[Media] = None
    volatility: Optional[Volatility] = None
    theme: Optional[str] = None
    demo_link: Optional[str] = None
    rtp: Optional[float] = Field(None, ge=0, le=100, description="Return to player, percent")
    min_bet: Optional[float] = Field(None, ge=0)
    max_bet: Optional[float] = Field(None, ge=0)
    paylines: Optional[int] = None
    reels: Optional[int] = None
    max_win: Optional[float] = None
    features: List[str] = Field(default_factory=list)
    is_popular: bool = False
    release_date: Optional[UTCDateTime] = None
    category: Optional[str] = Field(None, description="Category id")

    @model_validator(mode="after")
    def _check_bets(self):
        if self.min_bet is not None and self.max_bet is not None and self.min_bet > self.max_bet:
            raise ValueError("min_bet must not exceed max_bet")
        return self


class Bonus(ContentBase):
    name: str
    slug: str = Field(..., description="URL-friendly unique identifier")
    bonus_type: BonusType
    bonus_amount: Optional[str] = None
    promo_code: Optional[str] = None
    terms: Optional[str] = None
    wagering_requirements: Optional[str] = None
    valid_until: Optional[UTCDateTime] = Field(None, description="Null means the bonus never expires")
    casino_review: Optional[str] = Field(None, description="Casino review id")


class Comment(ContentBase):
    """Visitor comment attached to exactly one casino review, article or slot"""
    text: str = Field(..., min_length=1)
    author_name: str = Field(..., min_length=1)
    author_email: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    status: CommentStatus = CommentStatus.PENDING
    casino_review: Optional[str] = None
    article: Optional[str] = None
    slot: Optional[str] = None

    @model_validator(mode="after")
    def _single_parent(self):
        parents = [p for p in (self.casino_review, self.article, self.slot) if p]
        if len(parents) != 1:
            raise ValueError("Comment must reference exactly one of casino_review, article or slot")
        return self


class CommentCreate(BaseModel):
    """Public comment submission (status is always reset to pending)"""
    text: str
    author_name: str
    author_email: Optional[str] = None
    rating: Optional[int] = None
    casino_review: Optional[str] = None
    article: Optional[str] = None
    slot: Optional[str] = None
    status: Optional[str] = None


# Auth
class User(BaseModel):
    username: str
    email: str
    password_hash: str
    role: Literal["authenticated"] = "authenticated"
    is_active: bool = True


class Role(BaseModel):
    name: str
    type: Literal["public", "authenticated"]
    description: Optional[str] = None


class Permission(BaseModel):
    action: str
    role: str = Field(..., description="Role type the action is granted to")
