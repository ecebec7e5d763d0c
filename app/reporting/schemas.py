"""Pydantic schemas for the reporting module."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ReportResult(BaseModel):
    """Tabular output of one report run.

    ``sentinels`` maps a column to the marker used on subtotal and grand-total rows;
    such rows are aggregates, not real category data.
    """

    name: str
    columns: List[str] = []
    rows: List[Dict[str, Any]] = []
    row_count: int = 0
    sentinels: Dict[str, str] = {}
    message: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    def is_rollup_row(self, row: Dict[str, Any]) -> bool:
        return any(row.get(column) == marker for column, marker in self.sentinels.items())

    def is_grand_total_row(self, row: Dict[str, Any]) -> bool:
        return bool(self.sentinels) and all(
            row.get(column) == marker for column, marker in self.sentinels.items()
        )

    def data_rows(self) -> List[Dict[str, Any]]:
        return [row for row in self.rows if not self.is_rollup_row(row)]


class ReportSummary(BaseModel):
    """Catalog entry for one report."""

    name: str
    title: str
    description: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
    sentinels: Dict[str, str] = Field(default_factory=dict)
