"""
CSV Comparator
Row-by-row comparison of expected and produced CSV output
"""
import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from deepdiff import DeepDiff

from exceptions import MismatchError

logger = logging.getLogger(__name__)

# Cells by position, so repeated header names keep every column
Row = List[str]


def parse_csv(text: str) -> Tuple[List[str], List[Row]]:
    """
    Parse CSV text into its header and rows

    Cells stay strings; nothing is interpreted with a locale. Blank lines
    are skipped.

    Returns:
        Tuple of (headers, rows) where each row lists its cells in column order

    Raises:
        csv.Error: If the text is not parseable CSV
    """
    rows = [row for row in csv.reader(io.StringIO(text, newline='')) if row]
    if not rows:
        return [], []
    return rows[0], rows[1:]


def read_csv_text(path) -> str:
    """
    Read a produced CSV file (UTF-8, BOM tolerated)

    Raises:
        MismatchError: If the file is gone, unreadable or not UTF-8
    """
    try:
        with open(path, encoding='utf-8-sig', newline='') as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise MismatchError(f"Produced CSV {path} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise MismatchError(f"Cannot read produced CSV {path}: {e}") from e


def read_csv_file(path) -> Tuple[List[str], List[Row]]:
    """Parse a produced CSV file"""
    return parse_csv(read_csv_text(path))


@dataclass
class CsvComparison:
    """Outcome of comparing expected CSV text with a produced file"""
    expected_headers: List[str]
    actual_headers: List[str]
    expected_rows: List[Row]
    actual_rows: List[Row]
    actual_text: str = ''
    diff: Dict = field(default_factory=dict)

    @property
    def matches(self) -> bool:
        return (
            self.expected_headers == self.actual_headers
            and self.expected_rows == self.actual_rows
        )

    def describe(self) -> str:
        """Human readable difference report"""
        if self.matches:
            return "CSV content matches"

        lines = [
            f"Expected {len(self.expected_rows)} row(s), got {len(self.actual_rows)}",
        ]
        if self.expected_headers != self.actual_headers:
            lines.append(f"Headers differ: expected {self.expected_headers}, got {self.actual_headers}")
        if self.diff:
            lines.append(self.diff.pretty())
        return "\n".join(lines)


def compare(expected_csv_text: str, actual_file_path) -> CsvComparison:
    """
    Compare expected CSV text with a produced CSV file

    Row order, row count, headers and every cell (by position) are significant.

    Raises:
        MismatchError: If the produced file cannot be read or either side is not CSV
    """
    actual_text = read_csv_text(actual_file_path)

    try:
        expected_headers, expected_rows = parse_csv(expected_csv_text)
        actual_headers, actual_rows = parse_csv(actual_text)
    except csv.Error as e:
        raise MismatchError(f"Cannot parse CSV for {actual_file_path}: {e}") from e

    diff = DeepDiff(
        {'headers': expected_headers, 'rows': expected_rows},
        {'headers': actual_headers, 'rows': actual_rows}
    )

    comparison = CsvComparison(
        expected_headers=expected_headers,
        actual_headers=actual_headers,
        expected_rows=expected_rows,
        actual_rows=actual_rows,
        actual_text=actual_text,
        diff=diff
    )

    logger.debug(f"Compared {actual_file_path}: matches={comparison.matches}")
    return comparison


def equal(expected_csv_text: str, actual_file_path) -> bool:
    """True if the produced file has exactly the expected rows, in order"""
    return compare(expected_csv_text, actual_file_path).matches


def assert_equal(expected_csv_text: str, actual_file_path) -> CsvComparison:
    """
    Compare and raise on mismatch

    Raises:
        MismatchError: With the difference report and both CSV texts
    """
    comparison = compare(expected_csv_text, actual_file_path)

    if not comparison.matches:
        raise MismatchError(
            f"CSV content does not match {actual_file_path}\n"
            f"{comparison.describe()}\n"
            f"--- expected ---\n{expected_csv_text}\n"
            f"--- actual ---\n{comparison.actual_text}",
            diff=comparison.diff
        )

    return comparison
