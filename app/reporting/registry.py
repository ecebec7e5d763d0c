"""Report registry: every named, read-only report the platform can run."""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.query import FilterBuilder

ALL_CATEGORIES = "ALL CATEGORIES"
ALL_STATUSES = "ALL STATUSES"
ALL_DAYS = "ALL DAYS"
ALL_METHODS = "ALL METHODS"
UNCATEGORIZED = "Uncategorized"


# ===== PARAMETER MODELS =====


class NoParams(BaseModel):
    model_config = ConfigDict(extra="forbid")


class LimitParams(BaseModel):
    limit: int = Field(default=10, ge=1, le=100)

    model_config = ConfigDict(extra="forbid")


class AnalyticsParams(LimitParams):
    limit: int = Field(default=15, ge=1, le=100)


class ClaimsParams(LimitParams):
    limit: int = Field(default=20, ge=1, le=100)


class TrendParams(BaseModel):
    days: int = Field(default=30, ge=1, le=365)

    model_config = ConfigDict(extra="forbid")


class CampaignProgressParams(BaseModel):
    status: Optional[str] = None
    category_id: Optional[int] = None
    search: Optional[str] = Field(default=None, max_length=200)
    limit: Optional[int] = Field(default=None, ge=1, le=500)
    offset: int = Field(default=0, ge=0)

    model_config = ConfigDict(extra="forbid")

    @field_validator("status", "category_id", "search", "limit", mode="before")
    @classmethod
    def blank_is_none(cls, value):
        # Empty form fields arrive as ""
        return None if value == "" else value


class WindowedViewParams(BaseModel):
    campaign_id: Optional[int] = None
    limit: Optional[int] = Field(default=None, ge=1, le=1000)

    model_config = ConfigDict(extra="forbid")

    @field_validator("campaign_id", "limit", mode="before")
    @classmethod
    def blank_is_none(cls, value):
        return None if value == "" else value


# ===== DEFINITIONS =====


@dataclass(frozen=True)
class ReportDefinition:
    """A named report: its parameter model and how to render its statement.

    ``sentinels`` maps a column to the marker a rollup puts in it on subtotal and
    grand-total rows.
    """

    name: str
    title: str
    description: str
    caller: str
    render: Callable[[Any], Tuple[str, Dict[str, Any]]]
    parameters: Type[BaseModel] = NoParams
    sentinels: Dict[str, str] = field(default_factory=dict)
    int_params: Tuple[str, ...] = ()

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title,
            "description": self.description,
            "parameters": self.parameters.model_json_schema().get("properties", {}),
            "sentinels": dict(self.sentinels),
        }


REPORT_REGISTRY: Dict[str, ReportDefinition] = {}


def register_report(definition: ReportDefinition) -> ReportDefinition:
    REPORT_REGISTRY[definition.name] = definition
    return definition


def get_report_definition(name: str) -> Optional[ReportDefinition]:
    return REPORT_REGISTRY.get(name)


def get_available_reports() -> List[ReportDefinition]:
    return list(REPORT_REGISTRY.values())


# ===== STATEMENTS =====


def _platform_statistics(params: NoParams):
    query = """
        SELECT
            (SELECT COUNT(*) FROM Users) AS total_users,
            (SELECT COUNT(*) FROM Campaigns) AS total_campaigns,
            (SELECT COUNT(*) FROM Campaigns WHERE status = 'active') AS active_campaigns,
            (SELECT COUNT(*) FROM Donations WHERE status = 'completed') AS total_donations,
            (SELECT COALESCE(SUM(amount), 0) FROM Donations WHERE status = 'completed') AS total_funds_raised,
            (SELECT COALESCE(ROUND(AVG(amount), 2), 0) FROM Donations WHERE status = 'completed') AS average_donation,
            (SELECT COUNT(*) FROM Campaigns WHERE current_amount >= goal_amount) AS funded_campaigns,
            CASE
                WHEN (SELECT COUNT(*) FROM Campaigns) = 0 THEN 0
                ELSE ROUND(
                    (SELECT COUNT(*) FROM Campaigns WHERE current_amount >= goal_amount) * 1.0
                    / (SELECT COUNT(*) FROM Campaigns), 4)
            END AS success_rate
    """
    return query, {}


def _top_donors(params: LimitParams):
    query = """
        SELECT u.user_id, u.username, u.full_name,
               COUNT(d.donation_id) AS donation_count,
               SUM(d.amount) AS total_donated,
               MAX(d.donation_date) AS last_donation
        FROM Users u
        INNER JOIN Donations d ON d.donor_id = u.user_id AND d.status = 'completed'
        GROUP BY u.user_id, u.username, u.full_name
        ORDER BY total_donated DESC
        LIMIT :limit
    """
    return query, {"limit": params.limit}


def _campaign_progress(params: CampaignProgressParams):
    builder = FilterBuilder(
        f"""
        SELECT c.campaign_id, c.campaign_title, c.status, c.category_id,
               COALESCE(cat.category_name, '{UNCATEGORIZED}') AS category_name,
               c.goal_amount, c.current_amount,
               ROUND(c.current_amount * 100.0 / c.goal_amount, 2) AS completion_percentage,
               u.username AS creator_username,
               c.start_date, c.end_date, c.created_at
        FROM Campaigns c
        INNER JOIN Users u ON c.creator_id = u.user_id
        LEFT JOIN Categories cat ON c.category_id = cat.category_id
        """
    )
    builder.where_equals("c.status", "status", params.status)
    builder.where_equals("c.category_id", "category_id", params.category_id)
    builder.where_contains(["c.campaign_title", "c.description"], "search", params.search)
    builder.order_by("c.created_at DESC, c.campaign_id DESC")
    if params.limit is not None:
        builder.paginate(params.limit, params.offset)
    return builder.render()


def _campaign_rollup(params: NoParams):
    # Detail rows, one subtotal per category, then the grand total
    category = f"COALESCE(cat.category_name, '{UNCATEGORIZED}')"
    measures = """
            COUNT(c.campaign_id) AS campaign_count,
            COALESCE(SUM(c.goal_amount), 0) AS total_goals,
            COALESCE(SUM(c.current_amount), 0) AS total_raised,
            COALESCE(ROUND(AVG(c.current_amount), 2), 0) AS avg_raised,
            COALESCE(ROUND(AVG(c.current_amount * 100.0 / c.goal_amount), 2), 0) AS avg_completion_pct"""
    query = f"""
        SELECT category, status, campaign_count, total_goals, total_raised,
               avg_raised, avg_completion_pct, rollup_level
        FROM (
            SELECT {category} AS category, c.status AS status,{measures},
                   0 AS rollup_level
            FROM Campaigns c
            LEFT JOIN Categories cat ON c.category_id = cat.category_id
            GROUP BY {category}, c.status
            UNION ALL
            SELECT {category} AS category, '{ALL_STATUSES}' AS status,{measures},
                   1 AS rollup_level
            FROM Campaigns c
            LEFT JOIN Categories cat ON c.category_id = cat.category_id
            GROUP BY {category}
            UNION ALL
            SELECT '{ALL_CATEGORIES}' AS category, '{ALL_STATUSES}' AS status,{measures},
                   2 AS rollup_level
            FROM Campaigns c
        ) grouping_levels
        ORDER BY CASE WHEN rollup_level = 2 THEN 1 ELSE 0 END, category, rollup_level, status
    """
    return query, {}


def _donation_trends_rollup(params: TrendParams):
    day = "CAST(DATE(d.donation_date) AS CHAR(10))"
    measures = """
            COUNT(d.donation_id) AS transaction_count,
            COALESCE(SUM(d.amount), 0) AS total_amount"""
    window = "d.status = 'completed' AND d.donation_date >= :since"
    query = f"""
        SELECT donation_day, payment_method, transaction_count, total_amount, rollup_level
        FROM (
            SELECT {day} AS donation_day, d.payment_method AS payment_method,{measures},
                   0 AS rollup_level
            FROM Donations d
            WHERE {window}
            GROUP BY {day}, d.payment_method
            UNION ALL
            SELECT {day} AS donation_day, '{ALL_METHODS}' AS payment_method,{measures},
                   1 AS rollup_level
            FROM Donations d
            WHERE {window}
            GROUP BY {day}
            UNION ALL
            SELECT '{ALL_DAYS}' AS donation_day, '{ALL_METHODS}' AS payment_method,{measures},
                   2 AS rollup_level
            FROM Donations d
            WHERE {window}
        ) grouping_levels
        ORDER BY CASE WHEN rollup_level = 2 THEN 1 ELSE 0 END, donation_day DESC, rollup_level, payment_method
    """
    since = date.today() - timedelta(days=params.days)
    return query, {"since": since.isoformat()}


def _donation_windowed_view(params: WindowedViewParams):
    builder = FilterBuilder(
        """
        SELECT d.donation_id, d.campaign_id, d.amount, d.donation_date, d.payment_method,
               d.status, d.is_anonymous, d.message,
               c.campaign_title,
               CASE WHEN d.is_anonymous = 1 THEN 'Anonymous Donor' ELSE u.full_name END AS donor_name,
               u.username AS donor_username,
               SUM(d.amount) OVER (
                   PARTITION BY d.campaign_id
                   ORDER BY d.donation_date, d.donation_id
                   ROWS BETWEEN UNBOUNDED PRECEDING AND CURRENT ROW
               ) AS running_total,
               ROW_NUMBER() OVER (
                   PARTITION BY d.campaign_id
                   ORDER BY d.amount DESC, d.donation_id
               ) AS donation_rank,
               AVG(d.amount) OVER (
                   PARTITION BY d.campaign_id
               ) AS campaign_avg_donation
        FROM Donations d
        INNER JOIN Campaigns c ON d.campaign_id = c.campaign_id
        INNER JOIN Users u ON d.donor_id = u.user_id
        WHERE d.status = 'completed'
        """,
        has_where=True,
    )
    builder.where_equals("d.campaign_id", "campaign_id", params.campaign_id)
    builder.order_by("d.donation_date DESC, d.donation_id DESC")
    if params.limit is not None:
        builder.paginate(params.limit)
    return builder.render()


def _campaign_analytics(params: AnalyticsParams):
    query = f"""
        WITH Campaign_Stats AS (
            SELECT c.campaign_id,
                   c.campaign_title,
                   COALESCE(cat.category_name, '{UNCATEGORIZED}') AS category,
                   c.goal_amount,
                   c.current_amount,
                   c.created_at,
                   COUNT(d.donation_id) AS donation_count,
                   AVG(d.amount) AS avg_donation,
                   MAX(d.amount) AS max_donation,
                   MIN(d.amount) AS min_donation
            FROM Campaigns c
            LEFT JOIN Categories cat ON c.category_id = cat.category_id
            LEFT JOIN Donations d ON c.campaign_id = d.campaign_id AND d.status = 'completed'
            GROUP BY c.campaign_id, c.campaign_title, cat.category_name,
                     c.goal_amount, c.current_amount, c.created_at
        ),
        Donor_Engagement AS (
            SELECT campaign_id,
                   COUNT(DISTINCT donor_id) AS unique_donors,
                   SUM(CASE WHEN is_anonymous = 1 THEN 1 ELSE 0 END) AS anonymous_count,
                   SUM(CASE WHEN is_anonymous = 0 THEN 1 ELSE 0 END) AS public_count
            FROM Donations
            WHERE status = 'completed'
            GROUP BY campaign_id
        )
        SELECT cs.campaign_id, cs.campaign_title, cs.category, cs.goal_amount, cs.current_amount,
               cs.donation_count, cs.avg_donation, cs.max_donation, cs.min_donation,
               COALESCE(de.unique_donors, 0) AS unique_donors,
               COALESCE(de.anonymous_count, 0) AS anonymous_count,
               COALESCE(de.public_count, 0) AS public_count,
               ROUND(cs.current_amount * 100.0 / cs.goal_amount, 2) AS completion_percentage,
               CASE
                   WHEN cs.current_amount >= cs.goal_amount THEN 'Fully Funded'
                   WHEN cs.current_amount >= cs.goal_amount * 0.75 THEN 'Almost There'
                   WHEN cs.current_amount >= cs.goal_amount * 0.5 THEN 'Halfway'
                   WHEN cs.current_amount >= cs.goal_amount * 0.25 THEN 'Getting Started'
                   ELSE 'Just Launched'
               END AS funding_stage
        FROM Campaign_Stats cs
        LEFT JOIN Donor_Engagement de ON cs.campaign_id = de.campaign_id
        ORDER BY cs.current_amount DESC, cs.campaign_id
        LIMIT :limit
    """
    return query, {"limit": params.limit}


def _category_performance(params: NoParams):
    category = f"COALESCE(cat.category_name, '{UNCATEGORIZED}')"
    query = f"""
        SELECT {category} AS category,
               COUNT(*) AS total_campaigns,
               SUM(CASE WHEN c.status = 'active' THEN 1 ELSE 0 END) AS active_count,
               SUM(CASE WHEN c.status = 'completed' THEN 1 ELSE 0 END) AS completed_count,
               SUM(CASE WHEN c.status = 'cancelled' THEN 1 ELSE 0 END) AS cancelled_count,
               SUM(CASE WHEN c.current_amount >= c.goal_amount THEN 1 ELSE 0 END) AS funded_count,
               SUM(CASE WHEN c.current_amount < c.goal_amount * 0.25 THEN 1 ELSE 0 END) AS struggling_count,
               SUM(CASE WHEN c.current_amount >= c.goal_amount THEN c.current_amount ELSE 0 END) AS overfunded_amount,
               ROUND(AVG(CASE WHEN c.status = 'active' THEN c.current_amount * 100.0 / c.goal_amount END), 2)
                   AS avg_active_completion
        FROM Campaigns c
        LEFT JOIN Categories cat ON c.category_id = cat.category_id
        GROUP BY {category}
        ORDER BY total_campaigns DESC, category
    """
    return query, {}


def _payment_method_stats(params: NoParams):
    query = """
        SELECT payment_method,
               COUNT(*) AS donation_count,
               SUM(amount) AS total_amount,
               ROUND(AVG(amount), 2) AS avg_amount,
               SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END) AS completed_count,
               SUM(CASE WHEN status = 'pending' THEN 1 ELSE 0 END) AS pending_count,
               SUM(CASE WHEN status = 'failed' THEN 1 ELSE 0 END) AS failed_count,
               SUM(CASE WHEN status = 'refunded' THEN 1 ELSE 0 END) AS refunded_count
        FROM Donations
        GROUP BY payment_method
        ORDER BY total_amount DESC, payment_method
    """
    return query, {}


def _top_contributors(params: LimitParams):
    query = """
        SELECT u.user_id, u.full_name, 'Top Donor' AS user_type,
               COALESCE(SUM(d.amount), 0) AS total_amount,
               COUNT(d.donation_id) AS transaction_count
        FROM Users u
        LEFT JOIN Donations d ON u.user_id = d.donor_id AND d.status = 'completed'
        WHERE u.user_role = 'donor'
        GROUP BY u.user_id, u.full_name
        HAVING COALESCE(SUM(d.amount), 0) > 0
        UNION
        SELECT u.user_id, u.full_name, 'Campaign Creator' AS user_type,
               COALESCE(SUM(c.current_amount), 0) AS total_amount,
               COUNT(c.campaign_id) AS transaction_count
        FROM Users u
        LEFT JOIN Campaigns c ON u.user_id = c.creator_id
        WHERE u.user_role = 'campaigner'
        GROUP BY u.user_id, u.full_name
        HAVING COALESCE(SUM(c.current_amount), 0) > 0
        ORDER BY total_amount DESC
        LIMIT :limit
    """
    return query, {"limit": params.limit}



def _rewards_overview(params: NoParams):
    query = """
        SELECT r.reward_id, r.campaign_id, c.campaign_title, c.status AS campaign_status,
               r.title AS reward_title, r.description, r.min_amount, r.max_backers,
               r.current_backers, r.is_available, r.estimated_delivery,
               CASE WHEN r.max_backers IS NULL THEN NULL
                    ELSE r.max_backers - r.current_backers
               END AS remaining_slots,
               CASE WHEN r.max_backers IS NULL THEN 0
                    ELSE ROUND(r.current_backers * 100.0 / r.max_backers, 1)
               END AS capacity_percent
        FROM Rewards r
        INNER JOIN Campaigns c ON r.campaign_id = c.campaign_id
        WHERE c.status IN ('active', 'completed')
        ORDER BY c.campaign_id, r.min_amount ASC, r.reward_id
    """
    return query, {}


def _reward_claims(params: ClaimsParams):
    query = """
        SELECT dr.donor_id, dr.reward_id, dr.donation_id, dr.claimed_at, dr.fulfillment_status,
               u.username, u.full_name,
               r.title AS reward_title,
               c.campaign_title,
               d.amount AS donation_amount,
               r.min_amount AS required_amount
        FROM Donor_Rewards dr
        INNER JOIN Users u ON dr.donor_id = u.user_id
        INNER JOIN Rewards r ON dr.reward_id = r.reward_id
        INNER JOIN Campaigns c ON r.campaign_id = c.campaign_id
        INNER JOIN Donations d ON dr.donation_id = d.donation_id
        ORDER BY dr.claimed_at DESC, dr.donation_id DESC
        LIMIT :limit
    """
    return query, {"limit": params.limit}


# ===== CATALOG =====

register_report(ReportDefinition(
    name="platform_statistics",
    title="Platform Statistics",
    description="Platform-wide totals; success_rate is funded campaigns over all campaigns",
    caller="analytics",
    render=_platform_statistics,
))

register_report(ReportDefinition(
    name="top_donors",
    title="Top Donors",
    description="Donors ordered by completed donation total",
    caller="analytics",
    render=_top_donors,
    parameters=LimitParams,
))

register_report(ReportDefinition(
    name="campaign_progress",
    title="Campaign Progress",
    description="Campaigns with completion percentage, filterable by status, category and search text",
    caller="campaigns",
    render=_campaign_progress,
    parameters=CampaignProgressParams,
    int_params=("category_id",),
))

register_report(ReportDefinition(
    name="campaign_rollup",
    title="Campaigns by Category and Status",
    description="Category x status totals with per-category subtotals and a grand total",
    caller="analytics",
    render=_campaign_rollup,
    sentinels={"category": ALL_CATEGORIES, "status": ALL_STATUSES},
))

register_report(ReportDefinition(
    name="donation_trends_rollup",
    title="Donation Trends",
    description="Completed donations per day and payment method with daily subtotals and a grand total",
    caller="analytics",
    render=_donation_trends_rollup,
    parameters=TrendParams,
    sentinels={"donation_day": ALL_DAYS, "payment_method": ALL_METHODS},
))

register_report(ReportDefinition(
    name="donation_windowed_view",
    title="Donations with Running Totals",
    description="Completed donations with per-campaign running total, rank and average",
    caller="donations",
    render=_donation_windowed_view,
    parameters=WindowedViewParams,
    int_params=("campaign_id",),
))

register_report(ReportDefinition(
    name="campaign_analytics",
    title="Campaign Analytics",
    description="Per-campaign donation statistics, donor engagement and funding stage",
    caller="analytics",
    render=_campaign_analytics,
    parameters=AnalyticsParams,
))

register_report(ReportDefinition(
    name="category_performance",
    title="Category Performance",
    description="Status and funding counts per category",
    caller="analytics",
    render=_category_performance,
))

register_report(ReportDefinition(
    name="payment_method_stats",
    title="Payment Methods",
    description="Donation counts and amounts per payment method, split by status",
    caller="donations",
    render=_payment_method_stats,
))

register_report(ReportDefinition(
    name="top_contributors",
    title="Top Contributors",
    description="Top donors and campaign creators in one list",
    caller="donations",
    render=_top_contributors,
    parameters=LimitParams,
))

register_report(ReportDefinition(
    name="rewards_overview",
    title="Rewards",
    description="Reward tiers of active and completed campaigns with backer counts and remaining capacity",
    caller="rewards",
    render=_rewards_overview,
))

register_report(ReportDefinition(
    name="reward_claims",
    title="Reward Claims",
    description="Most recent reward claims with donor, campaign and qualifying donation",
    caller="rewards",
    render=_reward_claims,
    parameters=ClaimsParams,
))
