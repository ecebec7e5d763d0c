"""Database models for the logging module."""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, Float
from app.core.database import Base

QUERY_LOG_TABLE = "Query_Log"


class QueryLog(Base):
    """Append-only record of every statement the application executed.

    Attribute names follow the query-log vocabulary; column names are the ones
    the existing dashboards read.
    """

    __tablename__ = QUERY_LOG_TABLE

    id = Column("log_id", Integer, primary_key=True, index=True)
    query_text = Column("query_text", Text, nullable=False)
    inferred_type = Column("query_type", String(20), nullable=False, default="")
    caller_label = Column("page_name", String(100), nullable=False, default="")
    elapsed_seconds = Column("execution_time", Float, nullable=False, default=0.0)
    affected_rows = Column("rows_affected", Integer, nullable=False, default=0)
    session_id = Column("user_session", String(128), nullable=True)
    executed_at = Column("executed_at", DateTime, default=datetime.now, index=True)
