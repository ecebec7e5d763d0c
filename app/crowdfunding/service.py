# app/crowdfunding/service.py
"""Business logic for the crowdfunding write actions."""

import logging
from typing import Any, Dict, List, Optional

import bcrypt

from app.core.context import RequestContext
from app.core.exceptions import QueryError
from app.crowdfunding.dao import CampaignDAO, CategoryDAO, DonationDAO, RewardDAO, UserDAO
from app.crowdfunding.schemas import (
    CampaignCreate,
    CampaignUpdate,
    CategoryCreate,
    DonationOutcome,
    DonationRequest,
    UserCreate,
    UserUpdate,
)

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


class UserService:
    """Account management. Email and role changes are recorded in User_Audit_Log."""

    def __init__(self, context: RequestContext):
        self.context = context
        self.dao = UserDAO(context)

    def list_users(self) -> List[Dict[str, Any]]:
        return self.dao.get_all()

    def get_user(self, user_id: int) -> Optional[Dict[str, Any]]:
        return self.dao.get_by_id(user_id)

    def list_active_donors(self) -> List[Dict[str, Any]]:
        return self.dao.get_active_donors()

    def create_user(self, data: UserCreate) -> Optional[int]:
        return self.dao.create(
            username=data.username,
            email=data.email,
            password_hash=hash_password(data.password),
            full_name=data.full_name,
            user_role=data.user_role,
            account_balance=data.account_balance,
        )

    def update_user(self, user_id: int, data: UserUpdate) -> bool:
        """Update the account; returns False when the user does not exist."""
        with self.context.transaction():
            current = self.dao.get_balance_and_contact(user_id)
            if current is None:
                return False
            self.dao.update(
                user_id,
                full_name=data.full_name,
                email=data.email,
                user_role=data.user_role,
                account_balance=data.account_balance,
                is_active=data.is_active,
            )
            if current["email"] != data.email or current["user_role"] != data.user_role:
                self.dao.insert_audit_entry(
                    user_id,
                    "UPDATE",
                    old_email=current["email"],
                    new_email=data.email,
                    old_role=current["user_role"],
                    new_role=data.user_role,
                    changed_by=self.context.session_id,
                )
        return True

    def delete_user(self, user_id: int) -> bool:
        """Delete the account; campaigns and donations go with it (ON DELETE CASCADE)."""
        with self.context.transaction():
            current = self.dao.get_balance_and_contact(user_id)
            if current is None:
                return False
            self.dao.delete(user_id)
            self.dao.insert_audit_entry(
                user_id,
                "DELETE",
                old_email=current["email"],
                new_email=None,
                old_role=current["user_role"],
                new_role=None,
                changed_by=self.context.session_id,
            )
        return True

    def get_audit_history(self, user_id: Optional[int] = None, limit: int = 50) -> List[Dict[str, Any]]:
        return self.dao.get_audit_history(user_id, limit)


class CategoryService:
    def __init__(self, context: RequestContext):
        self.dao = CategoryDAO(context)

    def list_categories(self) -> List[Dict[str, Any]]:
        return self.dao.get_all()

    def create_category(self, data: CategoryCreate) -> Optional[int]:
        return self.dao.create(data.category_name, data.description, data.icon)


class CampaignService:
    def __init__(self, context: RequestContext):
        self.dao = CampaignDAO(context)
        self.donation_dao = DonationDAO(context)
        self.reward_dao = RewardDAO(context)

    def get_campaign(self, campaign_id: int) -> Optional[Dict[str, Any]]:
        return self.dao.get_by_id(campaign_id)

    def get_campaign_donations(self, campaign_id: int) -> List[Dict[str, Any]]:
        return self.donation_dao.get_by_campaign(campaign_id)

    def get_campaign_rewards(self, campaign_id: int) -> List[Dict[str, Any]]:
        return self.reward_dao.get_by_campaign(campaign_id)

    def get_campaign_comments(self, campaign_id: int) -> List[Dict[str, Any]]:
        return self.dao.get_comments(campaign_id)

    def search_campaigns(self, term: str, limit: int = 50) -> List[Dict[str, Any]]:
        return self.dao.search(term, limit)

    def create_campaign(self, data: CampaignCreate) -> Optional[int]:
        return self.dao.create(
            {
                "title": data.title,
                "description": data.description,
                "goal_amount": data.goal_amount,
                "creator_id": data.creator_id,
                "category_id": data.category_id,
                "start_date": data.start_date,
                "end_date": data.end_date,
                "status": data.status,
                "image_url": data.image_url,
            }
        )

    def update_campaign(self, campaign_id: int, data: CampaignUpdate) -> bool:
        """Write the fields that were set; False when nothing was set or no such campaign."""
        changes = data.model_dump(exclude_unset=True)
        return self.dao.update(campaign_id, changes) > 0

    def delete_campaign(self, campaign_id: int) -> bool:
        return self.dao.delete(campaign_id) > 0


class DonationService:
    """Donation processing.

    The donation insert, the campaign total, the donor balance and the audit entry
    are written in one transaction. Business refusals (inactive campaign,
    insufficient balance) return an unsuccessful outcome without writing;
    database failures roll everything back and raise QueryError.
    """

    def __init__(self, context: RequestContext):
        self.context = context
        self.donation_dao = DonationDAO(context)
        self.campaign_dao = CampaignDAO(context)
        self.user_dao = UserDAO(context)
        self.reward_dao = RewardDAO(context)

    def process_donation(self, request: DonationRequest) -> DonationOutcome:
        with self.context.transaction():
            status = self.campaign_dao.get_status(request.campaign_id)
            if status is None:
                return DonationOutcome(success=False, message="Campaign not found")
            if status != "active":
                return DonationOutcome(success=False, message="Campaign is not active")

            donor = self.user_dao.get_balance_and_contact(request.donor_id)
            if donor is None:
                return DonationOutcome(success=False, message="Donor not found")
            if float(donor["account_balance"]) < request.amount:
                return DonationOutcome(success=False, message="Insufficient balance")

            donation_id = self.donation_dao.insert(
                campaign_id=request.campaign_id,
                donor_id=request.donor_id,
                amount=request.amount,
                payment_method=request.payment_method.value,
                message=request.message,
                is_anonymous=request.is_anonymous,
            )
            self.campaign_dao.add_to_current_amount(request.campaign_id, request.amount)
            self.donation_dao.deduct_balance(request.donor_id, request.amount)
            self.donation_dao.insert_audit_entry(
                donation_id,
                request.campaign_id,
                request.donor_id,
                request.amount,
                notes=f"Donation of {request.amount:.2f} via {request.payment_method.value}",
            )

        logger.info("Donation %s recorded for campaign %s", donation_id, request.campaign_id)

        if request.reward_id:
            self._assign_reward(request.campaign_id, request.donor_id, request.reward_id, donation_id)

        return DonationOutcome(
            donation_id=donation_id,
            success=True,
            message=f"Donation processed successfully! Donation ID: {donation_id}",
        )

    def _assign_reward(self, campaign_id: int, donor_id: int, reward_id: int, donation_id: int) -> bool:
        """Claim a slot on the reward and record the claim, both or neither.

        The donation is already committed; a refused or failed claim does not undo it.
        """
        try:
            with self.context.transaction():
                if not self.reward_dao.take_slot(reward_id, campaign_id):
                    logger.warning(
                        "Error assigning reward %s to donation %s: reward is unavailable or full",
                        reward_id,
                        donation_id,
                    )
                    return False
                self.reward_dao.insert_claim(donor_id, reward_id, donation_id)
        except QueryError as e:
            logger.warning(
                "Error assigning reward %s to donation %s: %s", reward_id, donation_id, e.detail
            )
            return False
        return True

    def get_recent_audit_entries(self, limit: int = 10) -> List[Dict[str, Any]]:
        return self.donation_dao.get_recent_audit_entries(limit)
