"""Pydantic schemas for the query log."""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict


class QueryLogEntry(BaseModel):
    """One executed statement, as recorded in Query_Log."""
    query_text: str
    inferred_type: str = ""
    caller_label: str = ""
    elapsed_seconds: float = Field(default=0.0, ge=0)
    affected_rows: int = Field(default=0, ge=0)
    session_id: Optional[str] = None
    executed_at: datetime = Field(default_factory=datetime.now)

    model_config = ConfigDict(from_attributes=True, extra="forbid")


class QueryLogRead(QueryLogEntry):
    """Schema for reading log rows including the ID."""
    id: int


class QueryTypeStats(BaseModel):
    """Aggregate timings for one statement type."""
    query_type: str
    query_count: int
    avg_execution_time: float
    max_execution_time: float
    min_execution_time: float
    total_execution_time: float
    total_rows_affected: int


class CallerStats(BaseModel):
    """Query counts for one page/module."""
    page_name: str
    query_count: int
    unique_query_types: int
