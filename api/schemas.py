from typing import Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str
    state: str
    engine: Optional[str] = None


class PersistenceDiagnosticsResponse(BaseModel):
    mode: str = Field(..., description="postgres when DATABASE_URL is set, otherwise sqlite")
    has_database_url: bool
    database_url_prefix: Optional[str] = Field(default=None, description="Scheme and host only, credentials stripped")
    sqlite_path: Optional[str] = None
    ssl_mode: Optional[str] = Field(default=None, description="Resolved libpq sslmode for postgres")
    state: str
