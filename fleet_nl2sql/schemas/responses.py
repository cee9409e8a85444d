"""
API response schemas for Fleet NL2SQL.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from fleet_nl2sql.services.errors import ErrorKind


class NL2SQLResponse(BaseModel):
    """Response model for the /nl2sql endpoint."""
    ok: bool = Field(..., description="Whether the query reached execution")
    sql: Optional[str] = Field(None, description="SQL that was executed")
    source: Optional[str] = Field(None, description="'remote' or 'mock'")
    intent: Optional[str] = Field(None, description="Template rule used when SQL was generated locally")
    view: Optional[str] = Field(None, description="Engine view that produced the rows")
    status: str = Field("", description="Final status message")
    status_log: List[str] = Field(default_factory=list, description="Every status message in order")
    error_kind: Optional[ErrorKind] = Field(None, description="Generation failure, if any")
    columns: List[str] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    chart: Optional[Dict[str, Any]] = Field(None, description="Bar chart payload for the result")
    table_html: Optional[str] = Field(None, description="Rendered HTML table")
    reveal_frames: Optional[List[str]] = Field(
        None,
        description="Progressive SQL prefixes, when requested"
    )


class MockSQLResponse(BaseModel):
    """Response model for the /sql/mock endpoint."""
    sql: str
    intent: str
