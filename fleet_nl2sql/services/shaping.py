"""
Shape query results for the chart and table collaborators.
"""
import html
from typing import Any, Dict

from fleet_nl2sql.schemas.results import QueryResult


def _to_number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def to_chart_payload(identifier: str, result: QueryResult) -> Dict[str, Any]:
    """
    Build a bar chart payload: first column as labels, second as values.

    Non-numeric values plot as 0. An empty result yields no labels.
    """
    labels = [str(row[0]) for row in result.rows]
    values = [_to_number(row[1]) if len(row) > 1 else 0.0 for row in result.rows]
    return {
        "id": identifier,
        "type": "bar",
        "labels": labels,
        "datasets": [{
            "label": result.columns[1] if len(result.columns) > 1 else "Value",
            "data": values,
        }],
    }


def to_table_payload(result: QueryResult) -> Dict[str, Any]:
    return {
        "columns": list(result.columns),
        "rows": result.as_records(),
        "row_count": result.row_count,
    }


def render_result_table(result: QueryResult) -> str:
    """Render a result as an HTML table with escaped cells."""
    head = "".join(f"<th>{html.escape(str(c))}</th>" for c in result.columns)
    body = "".join(
        "<tr>" + "".join(f"<td>{html.escape(str(cell))}</td>" for cell in row) + "</tr>"
        for row in result.rows
    )
    return (
        '<div class="table-wrap"><table class="data-table">'
        f"<thead><tr>{head}</tr></thead><tbody>{body}</tbody></table></div>"
    )
