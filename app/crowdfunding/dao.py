# app/crowdfunding/dao.py
"""Data access for users, categories, campaigns and donations.

Every statement goes through the QueryExecutor so it is timed and shows up in
the query log under the page that issued it.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from app.core.context import RequestContext
from app.query import FilterBuilder, QueryExecutor

# Allowed columns for partial campaign updates
CAMPAIGN_UPDATE_FIELDS = (
    "campaign_title",
    "description",
    "goal_amount",
    "category_id",
    "start_date",
    "end_date",
    "status",
    "featured",
    "image_url",
)


def _as_db_value(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, "value"):  # enum members
        return value.value
    return value


class UserDAO:
    """Users table plus the audit trail of account changes."""

    caller = "users"

    def __init__(self, context: RequestContext):
        self.executor = QueryExecutor(context)

    def get_all(self) -> List[Dict[str, Any]]:
        query = """
            SELECT u.user_id, u.username, u.email, u.full_name, u.user_role,
                   u.account_balance, u.created_at, u.is_active,
                   COUNT(DISTINCT c.campaign_id) AS campaigns_count,
                   COUNT(DISTINCT d.donation_id) AS donations_count,
                   COALESCE(SUM(d.amount), 0) AS total_donated
            FROM Users u
            LEFT JOIN Campaigns c ON u.user_id = c.creator_id
            LEFT JOIN Donations d ON u.user_id = d.donor_id AND d.status = 'completed'
            GROUP BY u.user_id, u.username, u.email, u.full_name, u.user_role,
                     u.account_balance, u.created_at, u.is_active
            ORDER BY u.created_at DESC, u.user_id DESC
        """
        return self.executor.fetch_all(query, caller=self.caller)

    def get_by_id(self, user_id: int) -> Optional[Dict[str, Any]]:
        """User row with activity counts and a donor level derived from completed donations."""
        query = """
            SELECT u.user_id, u.username, u.email, u.full_name, u.user_role,
                   u.account_balance, u.is_active, u.created_at,
                   (SELECT COUNT(*) FROM Campaigns WHERE creator_id = u.user_id) AS total_campaigns,
                   (SELECT COUNT(*) FROM Donations WHERE donor_id = u.user_id) AS total_donations,
                   (SELECT COALESCE(SUM(amount), 0) FROM Donations
                     WHERE donor_id = u.user_id AND status = 'completed') AS total_donated,
                   CASE
                       WHEN (SELECT COALESCE(SUM(amount), 0) FROM Donations
                              WHERE donor_id = u.user_id AND status = 'completed') >= 10000 THEN 'Platinum'
                       WHEN (SELECT COALESCE(SUM(amount), 0) FROM Donations
                              WHERE donor_id = u.user_id AND status = 'completed') >= 5000 THEN 'Gold'
                       WHEN (SELECT COALESCE(SUM(amount), 0) FROM Donations
                              WHERE donor_id = u.user_id AND status = 'completed') >= 1000 THEN 'Silver'
                       WHEN (SELECT COALESCE(SUM(amount), 0) FROM Donations
                              WHERE donor_id = u.user_id AND status = 'completed') > 0 THEN 'Bronze'
                       ELSE 'New'
                   END AS donor_level
            FROM Users u
            WHERE u.user_id = :user_id
        """
        return self.executor.fetch_one(query, {"user_id": user_id}, caller=self.caller)

    def get_balance_and_contact(self, user_id: int) -> Optional[Dict[str, Any]]:
        query = "SELECT user_id, email, user_role, account_balance FROM Users WHERE user_id = :user_id"
        return self.executor.fetch_one(query, {"user_id": user_id}, caller=self.caller)

    def get_active_donors(self) -> List[Dict[str, Any]]:
        """Every active account, whatever its role, can give to a campaign."""
        query = """
            SELECT user_id, username, full_name, account_balance
            FROM Users
            WHERE is_active = 1
            ORDER BY full_name
        """
        return self.executor.fetch_all(query, caller=self.caller)

    def create(
        self,
        username: str,
        email: str,
        password_hash: str,
        full_name: str,
        user_role: str,
        account_balance: float,
    ) -> Optional[int]:
        query = """
            INSERT INTO Users (username, email, password_hash, full_name, user_role, account_balance)
            VALUES (:username, :email, :password_hash, :full_name, :user_role, :account_balance)
        """
        result = self.executor.execute(
            query,
            {
                "username": username,
                "email": email,
                "password_hash": password_hash,
                "full_name": full_name,
                "user_role": user_role,
                "account_balance": account_balance,
            },
            caller=self.caller,
        )
        return result.last_insert_id

    def update(
        self,
        user_id: int,
        full_name: str,
        email: str,
        user_role: str,
        account_balance: float,
        is_active: bool,
    ) -> int:
        query = """
            UPDATE Users
            SET full_name = :full_name,
                email = :email,
                user_role = :user_role,
                account_balance = :account_balance,
                is_active = :is_active
            WHERE user_id = :user_id
        """
        result = self.executor.execute(
            query,
            {
                "user_id": user_id,
                "full_name": full_name,
                "email": email,
                "user_role": user_role,
                "account_balance": account_balance,
                "is_active": is_active,
            },
            caller=self.caller,
        )
        return result.rowcount

    def delete(self, user_id: int) -> int:
        query = "DELETE FROM Users WHERE user_id = :user_id"
        return self.executor.execute(query, {"user_id": user_id}, caller=self.caller).rowcount

    def insert_audit_entry(
        self,
        user_id: int,
        action_type: str,
        old_email: Optional[str],
        new_email: Optional[str],
        old_role: Optional[str],
        new_role: Optional[str],
        changed_by: str,
    ) -> None:
        query = """
            INSERT INTO User_Audit_Log (user_id, action_type, old_email, new_email, old_role, new_role, changed_by)
            VALUES (:user_id, :action_type, :old_email, :new_email, :old_role, :new_role, :changed_by)
        """
        self.executor.execute(
            query,
            {
                "user_id": user_id,
                "action_type": action_type,
                "old_email": old_email,
                "new_email": new_email,
                "old_role": old_role,
                "new_role": new_role,
                "changed_by": changed_by,
            },
            caller=self.caller,
        )

    def get_audit_history(self, user_id: Optional[int] = None, limit: int = 50) -> List[Dict[str, Any]]:
        builder = FilterBuilder("SELECT * FROM User_Audit_Log")
        builder.where_equals("user_id", "user_id", user_id)
        template, params = builder.order_by("changed_at DESC, audit_id DESC").paginate(limit).render()
        return self.executor.fetch_all(template, params, caller="audit", int_params=("user_id",))


class CategoryDAO:
    caller = "categories"

    def __init__(self, context: RequestContext):
        self.executor = QueryExecutor(context)

    def get_all(self) -> List[Dict[str, Any]]:
        query = """
            SELECT c.category_id, c.category_name, c.description, c.icon,
                   COUNT(DISTINCT camp.campaign_id) AS campaign_count,
                   COALESCE(SUM(camp.current_amount), 0) AS total_raised
            FROM Categories c
            LEFT JOIN Campaigns camp ON c.category_id = camp.category_id
            GROUP BY c.category_id, c.category_name, c.description, c.icon
            ORDER BY c.category_name
        """
        return self.executor.fetch_all(query, caller=self.caller)

    def create(self, category_name: str, description: Optional[str], icon: str) -> Optional[int]:
        query = """
            INSERT INTO Categories (category_name, description, icon)
            VALUES (:name, :description, :icon)
        """
        result = self.executor.execute(
            query, {"name": category_name, "description": description, "icon": icon}, caller=self.caller
        )
        return result.last_insert_id


class CampaignDAO:
    caller = "campaigns"

    def __init__(self, context: RequestContext):
        self.executor = QueryExecutor(context)

    def get_by_id(self, campaign_id: int) -> Optional[Dict[str, Any]]:
        query = """
            SELECT c.campaign_id, c.campaign_title, c.description, c.goal_amount, c.current_amount,
                   c.creator_id, c.category_id, c.start_date, c.end_date, c.status, c.featured,
                   c.image_url, c.created_at,
                   u.username AS creator_username,
                   u.full_name AS creator_name,
                   cat.category_name,
                   cat.icon AS category_icon,
                   COUNT(DISTINCT d.donation_id) AS donation_count,
                   COUNT(DISTINCT d.donor_id) AS unique_donors,
                   COALESCE(AVG(d.amount), 0) AS avg_donation,
                   (SELECT COUNT(*) FROM Comments WHERE campaign_id = c.campaign_id) AS comment_count,
                   ROUND(c.current_amount * 100.0 / c.goal_amount, 2) AS progress_percentage,
                   CASE WHEN c.current_amount >= c.goal_amount THEN 1 ELSE 0 END AS is_funded
            FROM Campaigns c
            INNER JOIN Users u ON c.creator_id = u.user_id
            LEFT JOIN Categories cat ON c.category_id = cat.category_id
            LEFT JOIN Donations d ON c.campaign_id = d.campaign_id AND d.status = 'completed'
            WHERE c.campaign_id = :campaign_id
            GROUP BY c.campaign_id, c.campaign_title, c.description, c.goal_amount, c.current_amount,
                     c.creator_id, c.category_id, c.start_date, c.end_date, c.status, c.featured,
                     c.image_url, c.created_at, u.username, u.full_name, cat.category_name, cat.icon
        """
        return self.executor.fetch_one(query, {"campaign_id": campaign_id}, caller=self.caller)

    def get_comments(self, campaign_id: int) -> List[Dict[str, Any]]:
        """Comment thread: top-level comments first, replies carry their parent's id."""
        query = """
            SELECT cm.comment_id, cm.content, cm.comment_date, cm.parent_comment_id,
                   u.username, u.full_name,
                   (SELECT COUNT(*) FROM Comments WHERE parent_comment_id = cm.comment_id) AS reply_count
            FROM Comments cm
            INNER JOIN Users u ON cm.user_id = u.user_id
            WHERE cm.campaign_id = :campaign_id
            ORDER BY cm.parent_comment_id ASC, cm.comment_date ASC, cm.comment_id ASC
        """
        return self.executor.fetch_all(query, {"campaign_id": campaign_id}, caller=self.caller)

    def get_status(self, campaign_id: int) -> Optional[str]:
        query = "SELECT status FROM Campaigns WHERE campaign_id = :campaign_id"
        return self.executor.execute(query, {"campaign_id": campaign_id}, caller=self.caller).scalar()

    def search(self, term: str, limit: int = 50) -> List[Dict[str, Any]]:
        """Literal, case-insensitive match on title or description."""
        builder = FilterBuilder(
            """
            SELECT c.campaign_id, c.campaign_title, c.description, c.status, c.goal_amount,
                   c.current_amount, c.created_at,
                   u.username AS creator_username,
                   cat.category_name
            FROM Campaigns c
            INNER JOIN Users u ON c.creator_id = u.user_id
            LEFT JOIN Categories cat ON c.category_id = cat.category_id
            """
        )
        builder.where_contains(["c.campaign_title", "c.description"], "search", term)
        template, params = builder.order_by("c.created_at DESC, c.campaign_id DESC").paginate(limit).render()
        return self.executor.fetch_all(template, params, caller="search")

    def create(self, data: Dict[str, Any]) -> Optional[int]:
        query = """
            INSERT INTO Campaigns (campaign_title, description, goal_amount, creator_id,
                                   category_id, start_date, end_date, status, image_url)
            VALUES (:title, :description, :goal_amount, :creator_id, :category_id,
                    :start_date, :end_date, :status, :image_url)
        """
        params = {key: _as_db_value(value) for key, value in data.items()}
        return self.executor.execute(query, params, caller=self.caller).last_insert_id

    def update(self, campaign_id: int, changes: Dict[str, Any]) -> int:
        """Write only allow-listed columns. Returns the affected row count (0 when nothing to write)."""
        fields = [field for field in CAMPAIGN_UPDATE_FIELDS if field in changes]
        if not fields:
            return 0
        set_clause = ", ".join(f"{field} = :{field}" for field in fields)
        params = {field: _as_db_value(changes[field]) for field in fields}
        params["campaign_id"] = campaign_id
        query = f"UPDATE Campaigns SET {set_clause} WHERE campaign_id = :campaign_id"
        return self.executor.execute(query, params, caller=self.caller).rowcount

    def delete(self, campaign_id: int) -> int:
        query = "DELETE FROM Campaigns WHERE campaign_id = :campaign_id"
        return self.executor.execute(query, {"campaign_id": campaign_id}, caller=self.caller).rowcount

    def add_to_current_amount(self, campaign_id: int, amount: float) -> int:
        query = """
            UPDATE Campaigns
            SET current_amount = current_amount + :amount
            WHERE campaign_id = :campaign_id
        """
        return self.executor.execute(
            query, {"campaign_id": campaign_id, "amount": amount}, caller="donations"
        ).rowcount


class DonationDAO:
    caller = "donations"

    def __init__(self, context: RequestContext):
        self.executor = QueryExecutor(context)

    def get_by_campaign(self, campaign_id: int) -> List[Dict[str, Any]]:
        query = """
            SELECT d.donation_id, d.amount, d.payment_method, d.donation_date, d.message,
                   u.username,
                   CASE WHEN d.is_anonymous = 1 THEN 'Anonymous Donor' ELSE u.full_name END AS donor_display_name
            FROM Donations d
            LEFT JOIN Users u ON d.donor_id = u.user_id
            WHERE d.campaign_id = :campaign_id AND d.status = 'completed'
            ORDER BY d.donation_date DESC, d.donation_id DESC
        """
        return self.executor.fetch_all(query, {"campaign_id": campaign_id}, caller=self.caller)

    def insert(
        self,
        campaign_id: int,
        donor_id: int,
        amount: float,
        payment_method: str,
        message: str,
        is_anonymous: bool,
    ) -> Optional[int]:
        query = """
            INSERT INTO Donations (campaign_id, donor_id, amount, payment_method, status, is_anonymous, message)
            VALUES (:campaign_id, :donor_id, :amount, :payment_method, 'completed', :is_anonymous, :message)
        """
        result = self.executor.execute(
            query,
            {
                "campaign_id": campaign_id,
                "donor_id": donor_id,
                "amount": amount,
                "payment_method": payment_method,
                "is_anonymous": is_anonymous,
                "message": message,
            },
            caller=self.caller,
        )
        return result.last_insert_id

    def deduct_balance(self, donor_id: int, amount: float) -> int:
        query = """
            UPDATE Users
            SET account_balance = account_balance - :amount
            WHERE user_id = :donor_id
        """
        return self.executor.execute(query, {"donor_id": donor_id, "amount": amount}, caller=self.caller).rowcount

    def insert_audit_entry(
        self, donation_id: int, campaign_id: int, donor_id: int, amount: float, notes: str
    ) -> None:
        query = """
            INSERT INTO Donation_Audit_Log (donation_id, campaign_id, donor_id, amount, action_type, notes)
            VALUES (:donation_id, :campaign_id, :donor_id, :amount, 'INSERT', :notes)
        """
        self.executor.execute(
            query,
            {
                "donation_id": donation_id,
                "campaign_id": campaign_id,
                "donor_id": donor_id,
                "amount": amount,
                "notes": notes,
            },
            caller=self.caller,
        )

    def get_recent_audit_entries(self, limit: int = 10) -> List[Dict[str, Any]]:
        query = """
            SELECT * FROM Donation_Audit_Log
            ORDER BY performed_at DESC, audit_id DESC
            LIMIT :limit
        """
        return self.executor.fetch_all(query, {"limit": limit}, caller=self.caller)



class RewardDAO:
    """Reward tiers and the claims donors make against them."""

    caller = "rewards"

    def __init__(self, context: RequestContext):
        self.executor = QueryExecutor(context)

    def get_by_campaign(self, campaign_id: int) -> List[Dict[str, Any]]:
        query = """
            SELECT reward_id, title, description, min_amount, max_backers,
                   current_backers, is_available, estimated_delivery
            FROM Rewards
            WHERE campaign_id = :campaign_id
            ORDER BY min_amount ASC, reward_id ASC
        """
        return self.executor.fetch_all(query, {"campaign_id": campaign_id}, caller=self.caller)

    def take_slot(self, reward_id: int, campaign_id: int) -> int:
        """Count one more backer if the reward still has room.

        Returns 1 when a slot was taken and 0 when the reward is unknown, belongs to
        another campaign, is unavailable or full. The reward is marked unavailable by
        the update that fills its last slot.
        """
        # is_available comes first: MySQL evaluates SET assignments left to right
        query = """
            UPDATE Rewards
            SET is_available = CASE
                    WHEN max_backers IS NOT NULL AND current_backers + 1 >= max_backers THEN 0
                    ELSE is_available
                END,
                current_backers = current_backers + 1
            WHERE reward_id = :reward_id
              AND campaign_id = :campaign_id
              AND is_available = 1
              AND (max_backers IS NULL OR current_backers < max_backers)
        """
        return self.executor.execute(
            query, {"reward_id": reward_id, "campaign_id": campaign_id}, caller=self.caller
        ).rowcount

    def insert_claim(self, donor_id: int, reward_id: int, donation_id: int) -> None:
        query = """
            INSERT INTO Donor_Rewards (donor_id, reward_id, donation_id, fulfillment_status)
            VALUES (:donor_id, :reward_id, :donation_id, 'pending')
        """
        self.executor.execute(
            query,
            {"donor_id": donor_id, "reward_id": reward_id, "donation_id": donation_id},
            caller=self.caller,
        )
