"""
Unit tests for the crowdfunding services: users, categories, campaigns and donations.
"""

from datetime import datetime

import pytest
from sqlalchemy import text

from app.core.exceptions import QueryError, QueryErrorKind
from app.crowdfunding.dao import DonationDAO, RewardDAO
from app.crowdfunding.models import Comment, Reward
from app.crowdfunding.schemas import (
    CampaignCreate,
    CampaignUpdate,
    CategoryCreate,
    DonationRequest,
    UserCreate,
    UserUpdate,
)
from app.crowdfunding.service import (
    CampaignService,
    CategoryService,
    DonationService,
    UserService,
    verify_password,
)


def _fetch_one(engine, query, **params):
    with engine.connect() as connection:
        row = connection.execute(text(query), params).first()
        return dict(row._mapping) if row else None


def _user_update(**overrides):
    values = {
        "full_name": "Bob Baker",
        "email": "bob@example.com",
        "user_role": "donor",
        "account_balance": 2000,
        "is_active": True,
    }
    values.update(overrides)
    return UserUpdate(**values)


class TestUserService:
    """Test account management and the user audit trail"""

    def test_create_user_hashes_password(self, context, engine):
        user_id = UserService(context).create_user(
            UserCreate(username="frank", email="frank@example.com", password="s3cret", full_name="Frank Fox")
        )

        stored = _fetch_one(engine, "SELECT * FROM Users WHERE user_id = :id", id=user_id)
        assert stored["username"] == "frank"
        assert stored["user_role"] == "donor"
        assert stored["password_hash"] != "s3cret"
        assert verify_password("s3cret", stored["password_hash"])

    def test_duplicate_username(self, context, sample_data):
        with pytest.raises(QueryError) as exc_info:
            UserService(context).create_user(
                UserCreate(username="alice", email="new@example.com", password="x", full_name="Another Alice")
            )
        assert str(exc_info.value) == "Username already exists"
        assert exc_info.value.status_code == 409

    def test_negative_balance_rejected_by_store(self, context):
        with pytest.raises(QueryError) as exc_info:
            UserService(context).create_user(
                UserCreate(username="gina", email="gina@example.com", password="x", full_name="Gina",
                           account_balance=-5)
            )
        assert exc_info.value.kind == QueryErrorKind.CONSTRAINT
        assert str(exc_info.value) == "Account balance must be non-negative"

    def test_invalid_role_rejected_by_store(self, context):
        with pytest.raises(QueryError) as exc_info:
            UserService(context).create_user(
                UserCreate(username="hank", email="hank@example.com", password="x", full_name="Hank",
                           user_role="superuser")
            )
        assert str(exc_info.value) == "Invalid user role"

    def test_donor_levels(self, context, sample_data):
        service = UserService(context)
        users = sample_data["users"]
        assert service.get_user(users["alice"])["donor_level"] == "Silver"
        assert service.get_user(users["bob"])["donor_level"] == "Bronze"
        assert service.get_user(users["dave"])["donor_level"] == "New"
        assert service.get_user(9999) is None

    def test_list_users_and_donors(self, context, sample_data):
        service = UserService(context)
        assert len(service.list_users()) == 5
        donors = [row["username"] for row in service.list_active_donors()]
        assert sorted(donors) == ["alice", "bob", "carol", "dave", "erin"]

    def test_update_records_email_change(self, context, sample_data):
        service = UserService(context)
        bob = sample_data["users"]["bob"]

        assert service.update_user(bob, _user_update(email="robert@example.com"))

        history = service.get_audit_history(bob)
        assert len(history) == 1
        assert history[0]["action_type"] == "UPDATE"
        assert history[0]["old_email"] == "bob@example.com"
        assert history[0]["new_email"] == "robert@example.com"
        assert history[0]["changed_by"] == "test-session"

    def test_update_without_contact_change_is_not_audited(self, context, sample_data):
        service = UserService(context)
        bob = sample_data["users"]["bob"]
        assert service.update_user(bob, _user_update(full_name="Robert Baker"))
        assert service.get_audit_history(bob) == []

    def test_update_missing_user(self, context, sample_data):
        assert UserService(context).update_user(9999, _user_update()) is False

    def test_failed_update_writes_nothing(self, context, engine, sample_data):
        bob = sample_data["users"]["bob"]
        with pytest.raises(QueryError):
            UserService(context).update_user(bob, _user_update(email="alice@example.com", user_role="admin"))

        stored = _fetch_one(engine, "SELECT email, user_role FROM Users WHERE user_id = :id", id=bob)
        assert stored == {"email": "bob@example.com", "user_role": "donor"}
        assert _fetch_one(engine, "SELECT COUNT(*) AS n FROM User_Audit_Log")["n"] == 0

    def test_delete_cascades(self, context, count_rows, sample_data):
        service = UserService(context)
        assert service.delete_user(sample_data["users"]["erin"])

        assert count_rows("Users") == 4
        assert count_rows("Campaigns") == 0
        assert count_rows("Donations") == 0
        assert count_rows("Rewards") == 0
        assert service.get_audit_history()[0]["action_type"] == "DELETE"

    def test_delete_missing_user(self, context):
        assert UserService(context).delete_user(9999) is False


class TestCategoryService:

    def test_create_and_list(self, context, sample_data):
        service = CategoryService(context)
        category_id = service.create_category(CategoryCreate(category_name="Music"))
        assert category_id is not None

        rows = {row["category_name"]: row for row in service.list_categories()}
        assert rows["Music"]["icon"] == "fa-folder"
        assert rows["Arts"]["campaign_count"] == 2

    def test_duplicate_name(self, context, sample_data):
        with pytest.raises(QueryError) as exc_info:
            CategoryService(context).create_category(CategoryCreate(category_name="Arts"))
        assert str(exc_info.value) == "Category name already exists"


class TestCampaignService:

    def test_create_and_get(self, context, sample_data):
        service = CampaignService(context)
        campaign_id = service.create_campaign(
            CampaignCreate(
                title="Community Garden",
                goal_amount=500,
                creator_id=sample_data["users"]["erin"],
                category_id="",
                start_date="2026-01-01",
            )
        )

        campaign = service.get_campaign(campaign_id)
        assert campaign["campaign_title"] == "Community Garden"
        assert campaign["status"] == "draft"
        assert campaign["category_id"] is None
        assert campaign["donation_count"] == 0

    def test_get_campaign_details(self, context, sample_data):
        campaign = CampaignService(context).get_campaign(sample_data["campaigns"]["mural"])
        assert campaign["creator_username"] == "erin"
        assert campaign["unique_donors"] == 2
        assert campaign["progress_percentage"] == pytest.approx(60.0)
        assert campaign["is_funded"] == 0

    def test_campaign_donations_mask_anonymous_donors(self, context, sample_data):
        rows = CampaignService(context).get_campaign_donations(sample_data["campaigns"]["robot"])
        assert [row["donor_display_name"] for row in rows] == ["Anonymous Donor"]

    def test_rewards_cheapest_first(self, context, db_session, sample_data):
        mural = sample_data["campaigns"]["mural"]
        db_session.add_all([
            Reward(campaign_id=mural, title="Mural tour", min_amount=250, max_backers=10),
            Reward(campaign_id=mural, title="Thank-you card", min_amount=10),
        ])
        db_session.commit()

        rewards = CampaignService(context).get_campaign_rewards(mural)
        assert [reward["title"] for reward in rewards] == ["Thank-you card", "Signed print", "Mural tour"]
        assert rewards[2]["max_backers"] == 10
        assert rewards[2]["current_backers"] == 0
        assert CampaignService(context).get_campaign_rewards(sample_data["campaigns"]["robot"]) == []

    def test_comment_thread_with_replies(self, context, db_session, sample_data):
        mural = sample_data["campaigns"]["mural"]
        users = sample_data["users"]
        question = Comment(campaign_id=mural, user_id=users["alice"], content="When does painting start?",
                           comment_date=datetime(2026, 3, 1, 9, 0))
        db_session.add(question)
        db_session.flush()
        db_session.add_all([
            Comment(campaign_id=mural, user_id=users["erin"], parent_comment_id=question.comment_id,
                    content="Next week!", comment_date=datetime(2026, 3, 1, 12, 0)),
            Comment(campaign_id=mural, user_id=users["bob"], content="Love the design",
                    comment_date=datetime(2026, 3, 2, 8, 0)),
        ])
        db_session.commit()

        service = CampaignService(context)
        comments = service.get_campaign_comments(mural)
        assert [comment["content"] for comment in comments] == [
            "When does painting start?", "Love the design", "Next week!"
        ]
        assert comments[0]["reply_count"] == 1
        assert comments[0]["username"] == "alice"
        assert comments[2]["parent_comment_id"] == comments[0]["comment_id"]
        assert comments[2]["full_name"] == "Erin Evans"
        assert service.get_campaign(mural)["comment_count"] == 3

    def test_search(self, context, sample_data):
        service = CampaignService(context)
        assert [row["campaign_title"] for row in service.search_campaigns("robot")] == ["Robot Kit"]
        assert service.search_campaigns("_") == []

    def test_partial_update(self, context, sample_data):
        service = CampaignService(context)
        mural = sample_data["campaigns"]["mural"]

        assert service.update_campaign(mural, CampaignUpdate(status="completed", featured=True))

        campaign = service.get_campaign(mural)
        assert campaign["status"] == "completed"
        assert campaign["featured"] == 1
        assert campaign["campaign_title"] == "Mural Project"

    def test_update_nothing_or_missing(self, context, sample_data):
        service = CampaignService(context)
        assert service.update_campaign(sample_data["campaigns"]["mural"], CampaignUpdate()) is False
        assert service.update_campaign(9999, CampaignUpdate(status="active")) is False

    def test_goal_must_be_positive(self, context, sample_data):
        with pytest.raises(QueryError) as exc_info:
            CampaignService(context).update_campaign(
                sample_data["campaigns"]["mural"], CampaignUpdate(goal_amount=0)
            )
        assert str(exc_info.value) == "Goal amount must be greater than zero"

    def test_delete(self, context, count_rows, sample_data):
        service = CampaignService(context)
        assert service.delete_campaign(sample_data["campaigns"]["mural"])
        assert service.delete_campaign(sample_data["campaigns"]["mural"]) is False
        assert count_rows("Campaigns") == 3
        assert count_rows("Donations") == 4


class TestDonationService:
    """Test that a donation moves money atomically"""

    def _request(self, sample_data, **overrides):
        values = {
            "campaign_id": sample_data["campaigns"]["mural"],
            "donor_id": sample_data["users"]["dave"],
            "amount": 40,
            "payment_method": "paypal",
        }
        values.update(overrides)
        return DonationRequest(**values)

    def test_successful_donation(self, context, engine, sample_data):
        outcome = DonationService(context).process_donation(self._request(sample_data))

        assert outcome.success
        assert outcome.message == f"Donation processed successfully! Donation ID: {outcome.donation_id}"

        campaign = _fetch_one(engine, "SELECT current_amount FROM Campaigns WHERE campaign_id = :id",
                              id=sample_data["campaigns"]["mural"])
        donor = _fetch_one(engine, "SELECT account_balance FROM Users WHERE user_id = :id",
                           id=sample_data["users"]["dave"])
        assert float(campaign["current_amount"]) == pytest.approx(640)
        assert float(donor["account_balance"]) == pytest.approx(60)

        audit = DonationService(context).get_recent_audit_entries()
        assert len(audit) == 1
        assert audit[0]["donation_id"] == outcome.donation_id
        assert audit[0]["action_type"] == "INSERT"

    def test_inactive_campaign_refused(self, context, count_rows, sample_data):
        outcome = DonationService(context).process_donation(
            self._request(sample_data, campaign_id=sample_data["campaigns"]["gallery"])
        )
        assert not outcome.success
        assert outcome.message == "Campaign is not active"
        assert outcome.donation_id is None
        assert count_rows("Donations") == 6

    def test_insufficient_balance_refused(self, context, count_rows, sample_data):
        outcome = DonationService(context).process_donation(self._request(sample_data, amount=150))
        assert not outcome.success
        assert outcome.message == "Insufficient balance"
        assert count_rows("Donation_Audit_Log") == 0

    def test_unknown_campaign_and_donor(self, context, sample_data):
        service = DonationService(context)
        assert service.process_donation(self._request(sample_data, campaign_id=9999)).message == "Campaign not found"
        assert service.process_donation(self._request(sample_data, donor_id=9999)).message == "Donor not found"

    def test_failure_mid_transaction_leaves_no_partial_writes(self, context, engine, count_rows,
                                                             sample_data, monkeypatch):
        def broken_audit(self, *args, **kwargs):
            self.executor.execute("INSERT INTO Missing_Audit_Table (donation_id) VALUES (1)")

        monkeypatch.setattr(DonationDAO, "insert_audit_entry", broken_audit)

        with pytest.raises(QueryError):
            DonationService(context).process_donation(self._request(sample_data))

        assert count_rows("Donations") == 6
        campaign = _fetch_one(engine, "SELECT current_amount FROM Campaigns WHERE campaign_id = :id",
                              id=sample_data["campaigns"]["mural"])
        donor = _fetch_one(engine, "SELECT account_balance FROM Users WHERE user_id = :id",
                           id=sample_data["users"]["dave"])
        assert float(campaign["current_amount"]) == pytest.approx(600)
        assert float(donor["account_balance"]) == pytest.approx(100)

    def test_reward_assigned(self, context, engine, count_rows, sample_data):
        outcome = DonationService(context).process_donation(
            self._request(sample_data, reward_id=sample_data["reward_id"])
        )
        assert outcome.success
        assert count_rows("Donor_Rewards") == 1

        reward = _fetch_one(engine, "SELECT current_backers, is_available FROM Rewards WHERE reward_id = :id",
                            id=sample_data["reward_id"])
        assert reward == {"current_backers": 1, "is_available": 1}

    def test_full_reward_is_not_claimed_again(self, context, engine, db_session, count_rows, sample_data):
        limited = Reward(campaign_id=sample_data["campaigns"]["mural"], title="Studio visit",
                         min_amount=50, max_backers=1)
        db_session.add(limited)
        db_session.commit()
        reward_id = limited.reward_id

        service = DonationService(context)
        for donor in ("alice", "bob"):
            outcome = service.process_donation(
                self._request(sample_data, donor_id=sample_data["users"][donor], amount=60, reward_id=reward_id)
            )
            assert outcome.success

        assert count_rows("Donations") == 8
        claims = _fetch_one(engine, "SELECT COUNT(*) AS n FROM Donor_Rewards WHERE reward_id = :id", id=reward_id)
        assert claims["n"] == 1
        reward = _fetch_one(engine, "SELECT current_backers, is_available FROM Rewards WHERE reward_id = :id",
                            id=reward_id)
        assert reward == {"current_backers": 1, "is_available": 0}

    def test_reward_of_another_campaign_refused(self, context, count_rows, sample_data, caplog):
        outcome = DonationService(context).process_donation(
            self._request(sample_data, campaign_id=sample_data["campaigns"]["robot"],
                          reward_id=sample_data["reward_id"])
        )
        assert outcome.success
        assert count_rows("Donor_Rewards") == 0
        assert any("unavailable or full" in record.getMessage() for record in caplog.records)

    def test_failed_claim_releases_slot(self, context, engine, count_rows, sample_data, monkeypatch):
        def broken_claim(self, *args, **kwargs):
            self.executor.execute("INSERT INTO Missing_Claims_Table (reward_id) VALUES (1)")

        monkeypatch.setattr(RewardDAO, "insert_claim", broken_claim)
        outcome = DonationService(context).process_donation(
            self._request(sample_data, reward_id=sample_data["reward_id"])
        )

        assert outcome.success
        assert count_rows("Donor_Rewards") == 0
        reward = _fetch_one(engine, "SELECT current_backers FROM Rewards WHERE reward_id = :id",
                            id=sample_data["reward_id"])
        assert reward["current_backers"] == 0

    def test_invalid_reward_does_not_undo_donation(self, context, count_rows, sample_data, caplog):
        outcome = DonationService(context).process_donation(self._request(sample_data, reward_id=9999))

        assert outcome.success
        assert count_rows("Donations") == 7
        assert count_rows("Donor_Rewards") == 0
        assert any("Error assigning reward 9999" in record.getMessage() for record in caplog.records)

    def test_amount_must_be_positive(self, sample_data):
        with pytest.raises(ValueError):
            self._request(sample_data, amount=0)
