"""Delimited text parsing and generation for answer library import/export."""

import io
import logging
import re
from typing import List, Tuple

import pandas as pd

from models import AnswerLibraryEntry, LibraryImportRow

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "Category",
    "Subcategory",
    "Key Phrases",
    "Standard Answer",
    "Evidence References",
    "Usage Count",
    "Confidence Score",
    "Last Used",
    "Created By",
    "Is Active",
]

LIST_SEPARATOR = ";"


def normalize_header(header) -> str:
    """'Standard Answer', 'standard_answer' and 'StandardAnswer' all map to 'standardanswer'."""
    return re.sub(r'[\s_\-]+', '', str(header)).lower()


def parse_flag(value: str, default: bool = True) -> bool:
    """Parse a Yes/No style cell."""
    value = (value or "").strip().lower()
    if value in ("yes", "y", "true", "1"):
        return True
    if value in ("no", "n", "false", "0"):
        return False
    return default


def _cell(value) -> str:
    return str(value) if pd.notna(value) else ""


def _field_count(values: List[str]) -> int:
    """Number of fields up to the last non-empty one."""
    for i in range(len(values) - 1, -1, -1):
        if values[i].strip():
            return i + 1
    return 0


class CSVProcessor:
    """Reads library import files and writes library exports."""

    def parse_library_rows(self, raw_text: str) -> Tuple[List[LibraryImportRow], List[str]]:
        """
        Parse comma-separated library rows with a header line.

        Row numbers are positions in the file with the header as row 1 (blank
        lines are not counted). Rows with more fields than the header come
        back with ``error`` set instead of data.

        Returns:
            Tuple of (parsed rows, file-level errors)
        """
        if not raw_text or not raw_text.strip():
            return [], []

        try:
            width = self._max_field_count(raw_text)
            # Fixed positional columns wide enough for every record, so no
            # line is ever dropped or folded into an index by the parser
            df = pd.read_csv(
                io.StringIO(raw_text),
                header=None,
                names=list(range(width)),
                index_col=False,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                engine="python",
            )
        except pd.errors.EmptyDataError:
            return [], []
        except pd.errors.ParserError as e:
            logger.error(f"Could not parse library import: {e}")
            return [], [f"Could not parse delimited text: {e}"]

        records = [[_cell(v) for v in values] for values in df.itertuples(index=False, name=None)]
        if not records:
            return [], []

        header_cells = records[0]
        header_width = _field_count(header_cells)
        headers = [normalize_header(c) for c in header_cells[:header_width]]
        logger.info(f"Parsed {len(records) - 1} library rows with columns {headers}")

        rows = []
        for position, values in enumerate(records[1:], start=2):
            field_count = _field_count(values)
            if field_count > header_width:
                rows.append(LibraryImportRow(
                    row_number=position,
                    data={},
                    error=f"Too many fields ({field_count}, expected {header_width})"
                ))
                continue
            rows.append(LibraryImportRow(
                row_number=position,
                data=dict(zip(headers, values[:header_width]))
            ))

        return rows, []

    @staticmethod
    def _max_field_count(raw_text: str) -> int:
        """Widest record in the text, found by letting the parser report over-wide lines."""
        widths: List[int] = []

        def _on_wide_line(fields: List[str]):
            widths.append(len(fields))
            return None

        sizing = pd.read_csv(
            io.StringIO(raw_text),
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            engine="python",
            on_bad_lines=_on_wide_line,
        )
        return max([sizing.shape[1], *widths])

    def generate_library_export(self, entries: List[AnswerLibraryEntry]) -> str:
        """
        Generate export text for library entries, one row per entry.

        Returns:
            CSV content as string
        """
        output_data = []
        for entry in entries:
            output_data.append({
                "Category": entry.category.value,
                "Subcategory": entry.subcategory or "",
                "Key Phrases": LIST_SEPARATOR.join(entry.key_phrases),
                "Standard Answer": entry.standard_answer,
                "Evidence References": LIST_SEPARATOR.join(entry.evidence_references),
                "Usage Count": entry.usage_count,
                "Confidence Score": entry.confidence_score,
                "Last Used": entry.last_used_at.isoformat() if entry.last_used_at else "",
                "Created By": entry.created_by,
                "Is Active": "Yes" if entry.is_active else "No",
            })

        output_df = pd.DataFrame(output_data, columns=EXPORT_COLUMNS)

        output = io.StringIO()
        output_df.to_csv(output, index=False, lineterminator="\n")
        return output.getvalue()
