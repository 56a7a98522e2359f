"""CSV building and streaming download responses"""

import csv
import logging
from collections.abc import Iterable
from datetime import date, datetime
from io import StringIO
from typing import Any

from fastapi.responses import StreamingResponse

logger = logging.getLogger(__name__)


def format_csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def build_csv(headers: list[str], rows: Iterable[Iterable[Any]]) -> str:
    output = StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL)
    writer.writerow(headers)
    for row in rows:
        writer.writerow([format_csv_value(v) for v in row])
    return output.getvalue()


def csv_response(filename_prefix: str, headers: list[str], rows: Iterable[Iterable[Any]]) -> StreamingResponse:
    content = build_csv(headers, rows)
    filename = f"{filename_prefix}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
    logger.info(f"✅ CSV export ready: {filename}")
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={filename}",
            "Cache-Control": "no-cache",
        },
    )
