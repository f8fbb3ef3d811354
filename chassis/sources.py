"""Decode import files (CSV or Excel) into rows of raw cells."""

import csv
import io
from pathlib import Path
from typing import Any, List, Union
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .errors import UnsupportedFileError


def rows_from_csv_text(text: str) -> List[List[str]]:
    """Parse CSV text, skipping blank lines. Quoted fields are honoured."""
    reader = csv.reader(io.StringIO(text))
    return [row for row in reader if any(cell.strip() for cell in row)]


def read_csv_rows(filename: Union[str, Path]) -> List[List[str]]:
    with open(filename, "r", newline="", encoding="utf-8-sig") as fp:
        return rows_from_csv_text(fp.read())


def read_xlsx_rows(filename: Union[str, Path]) -> List[List[Any]]:
    """Cell values of the first worksheet, one list per row."""
    workbook = load_workbook(filename, read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        return [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def read_rows(filename: Union[str, Path]) -> List[List[Any]]:
    """Read an import file into rows, choosing the decoder by suffix."""
    suffix = Path(filename).suffix.lower()
    if suffix == ".csv":
        try:
            return read_csv_rows(filename)
        except (UnicodeDecodeError, csv.Error) as exc:
            raise UnsupportedFileError(
                f"Could not read '{Path(filename).name}' as UTF-8 CSV: {exc}"
            ) from exc
    if suffix in (".xlsx", ".xlsm"):
        try:
            return read_xlsx_rows(filename)
        except (BadZipFile, InvalidFileException, KeyError) as exc:
            raise UnsupportedFileError(
                f"Could not read '{Path(filename).name}' as an Excel workbook: {exc}"
            ) from exc
    raise UnsupportedFileError(
        f"Unsupported file type '{suffix or filename}'. Use .csv or .xlsx."
    )
