"""CSV and JSON export of a completed scan session."""

import csv
import io
import json
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..core.constants import CSV_HEADER
from ..core.types import RecognitionResult, SessionSummary, utc_now
from ..utils.log import get_logger
from ..utils.validation import sanitize_filename, validate_enum_value

logger = get_logger(__name__)

EXPORT_FORMATS = ["csv", "json"]


def _money(value: float) -> Decimal:
    # Decimal is written unquoted by QUOTE_NONNUMERIC and keeps the two places
    return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def build_row(result: RecognitionResult) -> List[Any]:
    """Build one export row in CSV_HEADER order."""
    pricing = result.pricing
    return [
        result.name,
        result.manufacturer,
        result.casino or "",
        _money(pricing.buy_price),
        _money(pricing.sell_price),
        _money(pricing.profit),
        f"{pricing.margin_pct:.2f}%",
        f"{result.classification_confidence * 100:.1f}%",
        result.observed_at.isoformat(),
    ]


def export_csv(summary: SessionSummary) -> bytes:
    """CSV with a plain header row and quoted text fields."""
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(CSV_HEADER)
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for result in summary.results:
        writer.writerow(build_row(result))

    logger.debug("CSV export built", session_id=summary.session_id, rows=len(summary.results))
    return buffer.getvalue().encode("utf-8")


def export_json(summary: SessionSummary) -> bytes:
    """Pretty-printed {exportDate, results} document."""
    document: Dict[str, Any] = {
        "exportDate": utc_now().isoformat(),
        "results": [result.to_dict() for result in summary.results],
    }
    logger.debug("JSON export built", session_id=summary.session_id, rows=len(summary.results))
    return json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")


def export_results(summary: SessionSummary, fmt: str = "json") -> bytes:
    fmt = validate_enum_value(fmt.lower(), EXPORT_FORMATS, "export format")
    if fmt == "csv":
        return export_csv(summary)
    return export_json(summary)


def write_export(
    summary: SessionSummary,
    fmt: str,
    output_dir: Union[str, Path],
    filename: Optional[str] = None,
) -> Path:
    """Write an export to disk, creating the output directory if needed."""
    data = export_results(summary, fmt)
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / sanitize_filename(filename or f"deck-scan-results-{summary.session_id}.{fmt.lower()}")

    with open(path, "wb") as f:
        f.write(data)

    logger.info("Session exported", path=str(path), format=fmt, rows=len(summary.results))
    return path
