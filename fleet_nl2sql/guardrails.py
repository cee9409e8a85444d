"""
SQL guardrails for Fleet NL2SQL.

This module provides cleanup and safety checks for generated SQL.
"""
import logging
import re
from typing import Tuple

from fleet_nl2sql.services.errors import EmptyCompletion, NonSelectBlocked

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100

CODE_FENCE_PATTERNS = [
    r"```sql?",  # Opening fence with language tag
    r"```",  # Bare fences
]
SELECT_PATTERN = re.compile(r"^\s*SELECT\b", re.IGNORECASE)
LIMIT_PATTERN = re.compile(r"\bLIMIT\b", re.IGNORECASE)
TRAILING_TERMINATOR_PATTERN = re.compile(r";?\s*$")


def strip_code_fences(text: str) -> str:
    """Remove markdown code-fence artifacts and surrounding whitespace."""
    cleaned = text or ""
    for pattern in CODE_FENCE_PATTERNS:
        cleaned = re.sub(pattern, "", cleaned, flags=re.IGNORECASE)
    return cleaned.strip()


def is_select(sql: str) -> bool:
    return bool(SELECT_PATTERN.match(sql or ""))


def has_limit(sql: str) -> bool:
    return bool(LIMIT_PATTERN.search(sql or ""))


def ensure_limit(sql: str, limit: int = DEFAULT_LIMIT) -> str:
    """
    Append a LIMIT clause before the statement terminator if none is present.

    Already-limited SQL is returned unchanged.
    """
    if has_limit(sql):
        return sql
    return TRAILING_TERMINATOR_PATTERN.sub("", sql, count=1) + f" LIMIT {limit};"


def validate_sql(sql: str) -> Tuple[bool, str]:
    """
    Validate SQL against the output guardrails.

    Args:
        sql: The SQL query to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    sql = str(sql).strip()

    if not sql:
        return False, "SQL is empty"

    # Ensure query is SELECT only
    if not is_select(sql):
        logger.warning("SQL validation failed: does not start with SELECT: %s", sql[:20])
        return False, "SQL must start with SELECT"

    if not has_limit(sql):
        return False, "SQL must contain LIMIT clause"

    return True, ""


def sanitize_completion(text: str) -> str:
    """
    Turn a raw model completion into executable SQL.

    Raises:
        EmptyCompletion: If nothing remains after removing code fences
        NonSelectBlocked: If the statement does not start with SELECT
    """
    sql = strip_code_fences(text)
    if not sql:
        raise EmptyCompletion("Model returned an empty completion")
    if not is_select(sql):
        logger.warning("Blocked non-SELECT completion: %s", sql[:50])
        raise NonSelectBlocked(f"Completion does not start with SELECT: {sql[:50]}")
    return ensure_limit(sql)
