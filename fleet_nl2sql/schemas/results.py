"""
Query result schema for Fleet NL2SQL.
"""
from typing import Any, Dict, List, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

Cell = Union[int, float, str]


class QueryResult(BaseModel):
    """Ordered column names paired with ordered row tuples of equal arity."""
    model_config = ConfigDict(frozen=True)

    columns: Tuple[str, ...] = Field(..., description="Column names, unique and order-significant")
    rows: Tuple[Tuple[Cell, ...], ...] = Field(default=(), description="Row tuples")

    @model_validator(mode="after")
    def check_shape(self) -> "QueryResult":
        if len(set(self.columns)) != len(self.columns):
            raise ValueError(f"Duplicate column names: {list(self.columns)}")
        for i, row in enumerate(self.rows):
            if len(row) != len(self.columns):
                raise ValueError(
                    f"Row {i} has {len(row)} values, expected {len(self.columns)}"
                )
        return self

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def as_records(self) -> List[Dict[str, Any]]:
        return [dict(zip(self.columns, row)) for row in self.rows]
