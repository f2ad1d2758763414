"""
Report row formatting and CSV/XLSX rendering.
"""

import csv
import io
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Sequence, Tuple

from openpyxl import Workbook

from shared.errors import ConfigurationError

NUMBER = 0
TEXT = ""
UNAVAILABLE = "N/A"

CONTENT_TYPES = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


class Column(NamedTuple):
    key: str
    title: str
    default: Any = NUMBER


class ReportSchema:
    """
    Ordered output columns of one report type.
    Args:
        columns: (key, title, default) entries in output order.
    """

    def __init__(self, columns: Sequence[Column]):
        self.columns = list(columns)

    @property
    def keys(self) -> List[str]:
        return [c.key for c in self.columns]

    @property
    def titles(self) -> List[str]:
        return [c.title for c in self.columns]


def format_row(row: Mapping[str, Any], schema: ReportSchema) -> Dict[str, Any]:
    """
    Project a consolidated row onto the schema, substituting each column's
    default for absent or null values.
    """
    formatted = {}
    for column in schema.columns:
        value = row.get(column.key)
        formatted[column.key] = column.default if value is None else value
    return formatted


def format_rows(rows: Iterable[Mapping[str, Any]], schema: ReportSchema) -> List[Dict[str, Any]]:
    return [format_row(row, schema) for row in rows]


def render_csv(rows: Iterable[Mapping[str, Any]], schema: ReportSchema) -> bytes:
    out = io.StringIO()
    w = csv.writer(out)
    w.writerow(schema.titles)
    for row in rows:
        w.writerow([row[key] for key in schema.keys])
    return out.getvalue().encode("utf-8")


def render_xlsx(rows: Iterable[Mapping[str, Any]], schema: ReportSchema) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Report"
    ws.append(schema.titles)
    for row in rows:
        ws.append([_cell(row[key]) for key in schema.keys])
    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()


def _cell(value):
    # openpyxl takes dates and plain numbers; Decimal sums become floats
    if isinstance(value, (str, int, float, date)) or value is None:
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return str(value)


def render(rows: Iterable[Mapping[str, Any]], schema: ReportSchema, output_format: str = "csv") -> Tuple[bytes, str, str]:
    """
    Render formatted rows.
    Args:
        rows: Rows already passed through format_rows.
        schema (ReportSchema): Output columns.
        output_format (str): "csv" or "xlsx".
    Returns:
        tuple: (body, content_type, extension)
    Raises:
        ConfigurationError: If the format is not supported.
    """
    if output_format == "csv":
        body = render_csv(rows, schema)
    elif output_format == "xlsx":
        body = render_xlsx(rows, schema)
    else:
        raise ConfigurationError(f"Unsupported output format: {output_format}")
    return body, CONTENT_TYPES[output_format], output_format
