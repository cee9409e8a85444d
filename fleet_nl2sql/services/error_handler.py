"""
Error handling utilities for Fleet NL2SQL.

This module provides functionality for:
1. Mapping SQL generation failures to user-friendly status messages
2. Deciding which failures are recovered with locally generated SQL
3. Tracking error statistics
"""
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Union

from fleet_nl2sql.services.errors import ErrorKind, NL2SQLError
from fleet_nl2sql.services.rules import load_yaml_config

ERROR_MESSAGES_YAML = "error_messages.yaml"
MAX_RECENT_ERRORS = 100


class ErrorHandler:
    def __init__(self, filename: str = ERROR_MESSAGES_YAML):
        self.error_kinds = self._load_error_kinds(filename)
        self.error_stats = defaultdict(int)
        self.recent_errors: List[Dict[str, Any]] = []

    def _load_error_kinds(self, filename: str) -> Dict[str, Dict[str, Any]]:
        """Load per-kind message configuration"""
        config = load_yaml_config(filename, "error_kinds")
        missing = [kind.value for kind in ErrorKind if kind.value not in config]
        if missing:
            raise ValueError(f"{filename} is missing error kinds: {missing}")
        return config

    def _entry(self, kind: Union[ErrorKind, str]) -> Dict[str, Any]:
        return self.error_kinds[ErrorKind(kind).value]

    def is_recoverable(self, kind: Union[ErrorKind, str]) -> bool:
        return bool(self._entry(kind).get("recoverable", False))

    def get_user_message(self, error: NL2SQLError) -> str:
        """Short status text shown when the query is aborted"""
        return self._entry(error.kind)["message"].format(details=error.message)

    def get_fallback_message(self, kind: Union[ErrorKind, str]) -> str:
        """Status text shown when mock SQL replaces the remote result"""
        return self._entry(kind)["fallback_message"]

    def track_error(self, error: NL2SQLError, query: str = ""):
        """Track error information"""
        error_info = {
            "error_type": error.kind.value,
            "query": query,
            "details": error.message,
            "status_code": error.status_code,
            "timestamp": datetime.now().isoformat(),
        }
        self.error_stats[error.kind.value] += 1
        self.recent_errors.append(error_info)
        # Only keep the latest 100 error records
        if len(self.recent_errors) > MAX_RECENT_ERRORS:
            self.recent_errors.pop(0)

    def get_error_stats(self) -> Dict[str, Any]:
        """Get error statistics"""
        return {
            "total_errors": sum(self.error_stats.values()),
            "error_types": dict(self.error_stats),
            "recent_errors": self.recent_errors[-10:] if self.recent_errors else [],
        }


# Global error handler instance
error_handler = ErrorHandler()
