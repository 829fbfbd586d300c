"""CSV export of extracted tables."""

import csv
import io
from typing import List


def table_to_csv(table: List[List[str]]) -> str:
    """Render rows as CSV.

    Cells holding a comma, quote or line break are quoted, with embedded
    quotes doubled. Rows are joined with ``\\n`` and no trailing newline.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    for row in table:
        writer.writerow(["" if cell is None else str(cell) for cell in row])
    return buffer.getvalue().rstrip("\n")


def export_filename(original_name: str) -> str:
    """``report.v2.pdf`` -> ``report_extracted_data.csv``."""
    stem = original_name.split(".")[0] or "table"
    return f"{stem}_extracted_data.csv"
