from typing import List, Optional

from pydantic import BaseModel, Field


class DatabaseConfig(BaseModel):
    host: str = Field(min_length=1)
    port: int = Field(3306, ge=1, le=65535)
    user: str = Field(min_length=1)
    password: str = ""
    database: str = Field(min_length=1)


class DatabaseStatus(BaseModel):
    connected: bool


class ConnectionResult(BaseModel):
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None


class ImportResult(BaseModel):
    sheet: str
    created: int = 0
    updated: int = 0
    skipped: int = 0
    dry_run: bool = False
    errors: List[str] = Field(default_factory=list)
