from __future__ import annotations
import csv
from arena.services.outcomes import MalformedInput

MB = 1024 * 1024


def check_submission_file(
    file_name: str,
    data: bytes,
    *,
    max_file_size_mb: int,
    file_format: str = "csv",
    strict: bool = False,
) -> MalformedInput | None:
    """Structural admission checks for an uploaded prediction file."""
    ext = f".{file_format.lower().lstrip('.')}"
    if not file_name or not file_name.lower().endswith(ext):
        return MalformedInput(reason=f"Only {ext} files are allowed")
    if len(data) > max_file_size_mb * MB:
        return MalformedInput(reason=f"File size exceeds {max_file_size_mb}MB limit")
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return MalformedInput(reason="File is not valid UTF-8 text")

    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        return MalformedInput(reason="CSV file must contain at least a header and one data row")
    if strict:
        return _check_prediction_rows(lines)
    return None


def _check_prediction_rows(lines: list[str]) -> MalformedInput | None:
    try:
        rows = list(csv.reader(lines))
    except csv.Error as e:
        return MalformedInput(reason=f"Failed to parse CSV: {e}")

    header, body = rows[0], rows[1:]
    if len(header) != 2:
        return MalformedInput(reason=f"CSV must have exactly 2 columns (id, prediction). Found {len(header)} columns")
    if header[0].strip().lower() != "id":
        return MalformedInput(reason='First column must be named "id"')
    if any(len(r) != 2 or any(not v.strip() for v in r) for r in body):
        return MalformedInput(reason="CSV contains missing values")
    ids = [r[0] for r in body]
    if len(ids) != len(set(ids)):
        return MalformedInput(reason="Duplicate IDs found in CSV")
    return None
