# app/core/config.py
"""Environment-driven settings for the database connection and request tracking."""

import os
from typing import Optional
from urllib.parse import quote_plus

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

load_dotenv()

APPLICATION_ID = os.environ.get("APPLICATION_ID", "cf-tracker")
SESSION_COOKIE_NAME = os.environ.get("CF_SESSION_COOKIE", "cf_session")


class DatabaseConfig(BaseModel):
    """Connection settings for the CF_Tracker store.

    ``url`` wins over the individual MySQL settings when it is set; that is how
    development and test runs point the app at SQLite.
    """

    host: str = "localhost"
    name: str = "CF_Tracker"
    user: str = "root"
    password: str = ""
    charset: str = "utf8mb4"
    url: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        return cls(
            host=os.getenv("CF_DB_HOST", "localhost"),
            name=os.getenv("CF_DB_NAME", "CF_Tracker"),
            user=os.getenv("CF_DB_USER", "root"),
            password=os.getenv("CF_DB_PASSWORD", ""),
            charset=os.getenv("CF_DB_CHARSET", "utf8mb4"),
            url=os.getenv("DATABASE_URL") or None,
        )

    @property
    def sqlalchemy_url(self) -> str:
        if self.url:
            return self.url
        return (
            f"mysql+mysqlconnector://{quote_plus(self.user)}:{quote_plus(self.password)}"
            f"@{self.host}/{self.name}?charset={self.charset}"
        )

    @property
    def is_sqlite(self) -> bool:
        return self.sqlalchemy_url.startswith("sqlite")


def create_schema_on_startup(config: DatabaseConfig) -> bool:
    """Whether ``init_db`` should create missing tables (defaults to SQLite only)."""
    default = "true" if config.is_sqlite else "false"
    return os.getenv("CF_CREATE_SCHEMA", default).lower() == "true"
