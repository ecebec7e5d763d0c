# app/crowdfunding/models.py
"""SQLAlchemy models for the CF_Tracker schema.

The production schema (with its views, procedures and triggers) is owned by the
database; these models describe the tables the application reads and writes so
development and test databases can be created from them.
"""

from datetime import datetime
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import relationship
from app.core.database import Base

USER_ROLES = ("donor", "campaigner", "admin")
CAMPAIGN_STATUSES = ("draft", "active", "completed", "cancelled")
DONATION_STATUSES = ("pending", "completed", "failed", "refunded")
PAYMENT_METHODS = ("credit_card", "paypal", "bank_transfer", "crypto")


class User(Base):
    """Platform account: donor, campaigner or admin."""

    __tablename__ = "Users"
    __table_args__ = (
        UniqueConstraint("username", name="uk_users_username"),
        UniqueConstraint("email", name="uk_users_email"),
        CheckConstraint("account_balance >= 0", name="chk_account_balance"),
        CheckConstraint("user_role IN ('donor', 'campaigner', 'admin')", name="chk_user_role"),
    )

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), nullable=False)
    email = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(100), nullable=False)
    user_role = Column(String(20), nullable=False, default="donor", server_default="donor")
    account_balance = Column(Numeric(12, 2), nullable=False, default=0, server_default=text("0"))
    is_active = Column(Boolean, nullable=False, default=True, server_default=text("1"))
    created_at = Column(DateTime, default=datetime.now, server_default=func.now())

    campaigns = relationship("Campaign", back_populates="creator", cascade="all, delete-orphan", passive_deletes=True)


class Category(Base):
    """Campaign category."""

    __tablename__ = "Categories"
    __table_args__ = (UniqueConstraint("category_name", name="uk_categories_name"),)

    category_id = Column(Integer, primary_key=True, autoincrement=True)
    category_name = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(50), nullable=True, default="fa-folder", server_default="fa-folder")


class Campaign(Base):
    """Fundraising campaign with its running total."""

    __tablename__ = "Campaigns"
    __table_args__ = (
        CheckConstraint("goal_amount > 0", name="chk_goal_amount"),
        CheckConstraint("status IN ('draft', 'active', 'completed', 'cancelled')", name="chk_campaign_status"),
    )

    campaign_id = Column(Integer, primary_key=True, autoincrement=True)
    campaign_title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    goal_amount = Column(Numeric(12, 2), nullable=False)
    current_amount = Column(Numeric(12, 2), nullable=False, default=0, server_default=text("0"))
    creator_id = Column(Integer, ForeignKey("Users.user_id", ondelete="CASCADE"), nullable=False)
    category_id = Column(Integer, ForeignKey("Categories.category_id", ondelete="SET NULL"), nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default="draft", server_default="draft")
    featured = Column(Boolean, nullable=False, default=False, server_default=text("0"))
    image_url = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.now, server_default=func.now())

    creator = relationship("User", back_populates="campaigns")


class Donation(Base):
    """A donor's contribution to a campaign."""

    __tablename__ = "Donations"
    __table_args__ = (CheckConstraint("amount > 0", name="chk_donation_amount"),)

    donation_id = Column(Integer, primary_key=True, autoincrement=True)
    campaign_id = Column(Integer, ForeignKey("Campaigns.campaign_id", ondelete="CASCADE"), nullable=False)
    donor_id = Column(Integer, ForeignKey("Users.user_id", ondelete="CASCADE"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String(20), nullable=False, default="credit_card", server_default="credit_card")
    status = Column(String(20), nullable=False, default="completed", server_default="completed")
    is_anonymous = Column(Boolean, nullable=False, default=False, server_default=text("0"))
    message = Column(Text, nullable=True)
    donation_date = Column(DateTime, default=datetime.now, server_default=func.now(), index=True)


class Reward(Base):
    """Perk offered by a campaign above a minimum donation."""

    __tablename__ = "Rewards"

    reward_id = Column(Integer, primary_key=True, autoincrement=True)
    campaign_id = Column(Integer, ForeignKey("Campaigns.campaign_id", ondelete="CASCADE"), nullable=False)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    min_amount = Column(Numeric(12, 2), nullable=False)
    max_backers = Column(Integer, nullable=True)
    current_backers = Column(Integer, nullable=False, default=0, server_default=text("0"))
    is_available = Column(Boolean, nullable=False, default=True, server_default=text("1"))
    estimated_delivery = Column(Date, nullable=True)


class DonorReward(Base):
    """Reward claimed through a donation."""

    __tablename__ = "Donor_Rewards"

    donor_id = Column(Integer, ForeignKey("Users.user_id", ondelete="CASCADE"), primary_key=True)
    reward_id = Column(Integer, ForeignKey("Rewards.reward_id", ondelete="CASCADE"), primary_key=True)
    donation_id = Column(Integer, ForeignKey("Donations.donation_id", ondelete="CASCADE"), primary_key=True)
    fulfillment_status = Column(String(20), nullable=False, default="pending", server_default="pending")
    claimed_at = Column(DateTime, default=datetime.now, server_default=func.now())


class Comment(Base):
    """Campaign comment; replies point at their parent."""

    __tablename__ = "Comments"

    comment_id = Column(Integer, primary_key=True, autoincrement=True)
    campaign_id = Column(Integer, ForeignKey("Campaigns.campaign_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("Users.user_id", ondelete="CASCADE"), nullable=False)
    parent_comment_id = Column(Integer, ForeignKey("Comments.comment_id", ondelete="CASCADE"), nullable=True)
    content = Column(Text, nullable=False)
    comment_date = Column(DateTime, default=datetime.now, server_default=func.now())


class DonationAuditLog(Base):
    """Audit trail of donation writes."""

    __tablename__ = "Donation_Audit_Log"

    audit_id = Column(Integer, primary_key=True, autoincrement=True)
    donation_id = Column(Integer, nullable=True)
    campaign_id = Column(Integer, nullable=True)
    donor_id = Column(Integer, nullable=True)
    amount = Column(Numeric(12, 2), nullable=True)
    action_type = Column(String(20), nullable=False)
    notes = Column(Text, nullable=True)
    performed_at = Column(DateTime, default=datetime.now, server_default=func.now())


class UserAuditLog(Base):
    """Audit trail of account changes."""

    __tablename__ = "User_Audit_Log"

    audit_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=True)
    action_type = Column(String(20), nullable=False)
    old_email = Column(String(100), nullable=True)
    new_email = Column(String(100), nullable=True)
    old_role = Column(String(20), nullable=True)
    new_role = Column(String(20), nullable=True)
    changed_by = Column(String(100), nullable=True)
    changed_at = Column(DateTime, default=datetime.now, server_default=func.now())
