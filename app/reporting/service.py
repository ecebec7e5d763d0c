# app/reporting/service.py
"""Runs registered reports through the query executor."""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from app.core.context import RequestContext
from app.core.exceptions import ReportNotFoundError
from app.query import QueryExecutor
from app.reporting.registry import get_available_reports, get_report_definition
from app.reporting.schemas import ReportResult, ReportSummary

logger = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    # MySQL returns DECIMAL columns as Decimal; reports carry plain numbers
    if isinstance(value, Decimal):
        return float(value)
    return value


class ReportService:
    """Read-only reporting. Failures surface as QueryError; nothing is retried."""

    def __init__(self, context: RequestContext):
        self.context = context
        self.executor = QueryExecutor(context)

    def list_reports(self) -> List[ReportSummary]:
        return [ReportSummary(**definition.describe()) for definition in get_available_reports()]

    def run(self, name: str, params: Optional[Mapping[str, Any]] = None) -> ReportResult:
        """Validate ``params`` against the report's model, execute, and wrap the rows.

        Raises ReportNotFoundError for an unknown name and pydantic's ValidationError
        for bad parameters.
        """
        definition = get_report_definition(name)
        if definition is None:
            raise ReportNotFoundError(name)

        validated = definition.parameters.model_validate(dict(params or {}))
        template, bound = definition.render(validated)
        result = self.executor.execute(
            template,
            bound,
            caller=definition.caller,
            int_params=definition.int_params,
        )
        rows = [{key: _plain(value) for key, value in row.items()} for row in result.rows]

        logger.debug("Report %s returned %d rows in %.4fs", name, len(rows), result.elapsed_seconds)
        return ReportResult(
            name=name,
            columns=result.columns,
            rows=rows,
            row_count=len(rows),
            sentinels=dict(definition.sentinels),
        )

    # ===== CONVENIENCE WRAPPERS =====

    def platform_statistics(self) -> Dict[str, Any]:
        return self.run("platform_statistics").rows[0]

    def top_donors(self, limit: int = 10) -> ReportResult:
        return self.run("top_donors", {"limit": limit})

    def campaign_progress(self, **filters: Any) -> ReportResult:
        return self.run("campaign_progress", filters)

    def campaign_rollup(self) -> ReportResult:
        return self.run("campaign_rollup")

    def donation_trends_rollup(self, days: int = 30) -> ReportResult:
        return self.run("donation_trends_rollup", {"days": days})

    def donation_windowed_view(self, campaign_id: Optional[int] = None, limit: Optional[int] = None) -> ReportResult:
        return self.run("donation_windowed_view", {"campaign_id": campaign_id, "limit": limit})

    def rewards_overview(self) -> ReportResult:
        return self.run("rewards_overview")

    def reward_claims(self, limit: int = 20) -> ReportResult:
        return self.run("reward_claims", {"limit": limit})
