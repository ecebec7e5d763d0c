"""Pydantic schemas for crowdfunding write actions."""

from datetime import date
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserRole(str, Enum):
    DONOR = "donor"
    CAMPAIGNER = "campaigner"
    ADMIN = "admin"


class CampaignStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"
    BANK_TRANSFER = "bank_transfer"
    CRYPTO = "crypto"


class MessageType(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


# ===== USERS =====


class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    email: str = Field(min_length=3, max_length=100)
    password: str = Field(min_length=1)
    full_name: str = Field(min_length=1, max_length=100)
    user_role: str = UserRole.DONOR.value
    # Range checks are left to the database's CHECK constraints
    account_balance: float = 0.0


class UserUpdate(BaseModel):
    full_name: str
    email: str
    user_role: str
    account_balance: float
    is_active: bool = True


class UserAction(BaseModel):
    """Form-style user request; ``action`` picks the write."""
    action: Literal["create", "update", "delete"]
    user_id: Optional[int] = None
    create: Optional[UserCreate] = None
    update: Optional[UserUpdate] = None


# ===== CATEGORIES =====


class CategoryCreate(BaseModel):
    category_name: str = Field(min_length=1, max_length=50)
    description: Optional[str] = None
    icon: str = "fa-folder"


class CategoryAction(BaseModel):
    """Categories can only be created from the form."""
    action: Literal["create"]
    create: CategoryCreate


# ===== CAMPAIGNS =====


class CampaignCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    goal_amount: float
    creator_id: int
    category_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: CampaignStatus = CampaignStatus.DRAFT
    image_url: Optional[str] = None

    @field_validator("category_id", mode="before")
    @classmethod
    def empty_category_is_none(cls, value):
        return value or None


class CampaignUpdate(BaseModel):
    """Only the fields that are set are written."""
    campaign_title: Optional[str] = None
    description: Optional[str] = None
    goal_amount: Optional[float] = None
    category_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[CampaignStatus] = None
    featured: Optional[bool] = None
    image_url: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class CampaignAction(BaseModel):
    """Form-style campaign request; ``action`` picks the write."""
    action: Literal["create", "update", "delete"]
    campaign_id: Optional[int] = None
    create: Optional[CampaignCreate] = None
    update: Optional[CampaignUpdate] = None


# ===== DONATIONS =====


class DonationRequest(BaseModel):
    campaign_id: int
    donor_id: int
    amount: float = Field(gt=0)
    payment_method: PaymentMethod = PaymentMethod.CREDIT_CARD
    message: str = ""
    is_anonymous: bool = False
    reward_id: Optional[int] = None


class DonationOutcome(BaseModel):
    donation_id: Optional[int] = None
    success: bool
    message: str


# ===== RESPONSES =====


class ActionResult(BaseModel):
    """Inline result message for a write action."""
    message: str
    message_type: MessageType
    record_id: Optional[int] = None

    @classmethod
    def success(cls, message: str, record_id: Optional[int] = None) -> "ActionResult":
        return cls(message=message, message_type=MessageType.SUCCESS, record_id=record_id)

    @classmethod
    def error(cls, message: str) -> "ActionResult":
        return cls(message=message, message_type=MessageType.ERROR)