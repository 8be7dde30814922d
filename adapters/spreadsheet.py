"""Spreadsheet reader yielding raw cell values for bulk ingestion."""

import csv
from pathlib import Path
from typing import Any, Iterator

import pandas as pd

from core.config import SPREADSHEET_SHEET
from core.errors import SourceReadError
from core.interfaces import SourceReader
from core.logging_setup import get_logger

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
DELIMITED_SUFFIXES = {".csv": ",", ".tsv": "\t"}
# Only truly empty cells are missing; "NA", "null" and friends are text.
NA_VALUES = [""]


class SpreadsheetReader(SourceReader):
    """Reads one sheet of a workbook, or a delimited text file.

    There is no header row: every cell is data. Cells are yielded row by row,
    left to right. Empty cells come back as NaN and are left for
    ``extract_texts`` to drop.
    """

    def __init__(self, sheet: int | str = SPREADSHEET_SHEET) -> None:
        self.sheet = sheet
        self.logger = get_logger(__name__)

    @staticmethod
    def _widest_row(path: Path, sep: str) -> int:
        with path.open(newline="", encoding="utf-8") as handle:
            return max((len(row) for row in csv.reader(handle, delimiter=sep)), default=0)

    def _load_frame(self, path: Path) -> pd.DataFrame:
        suffix = path.suffix.lower()
        if suffix in EXCEL_SUFFIXES:
            return pd.read_excel(
                path,
                sheet_name=self.sheet,
                header=None,
                keep_default_na=False,
                na_values=NA_VALUES,
            )
        if suffix in DELIMITED_SUFFIXES:
            sep = DELIMITED_SUFFIXES[suffix]
            # Rows may be ragged; size the frame by the widest one.
            width = self._widest_row(path, sep)
            if not width:
                return pd.DataFrame()
            return pd.read_csv(
                path,
                sep=sep,
                header=None,
                names=list(range(width)),
                skip_blank_lines=True,
                keep_default_na=False,
                na_values=NA_VALUES,
            )
        supported = sorted(EXCEL_SUFFIXES | set(DELIMITED_SUFFIXES))
        raise SourceReadError(
            f"Unsupported spreadsheet format '{suffix}'. Use one of: "
            f"{', '.join(supported)}",
            details={"suffix": suffix},
        )

    def read(self, path: str) -> Iterator[Any]:
        source = Path(path)
        if not source.exists():
            raise SourceReadError(f"File not found: {path}", details={"path": path})
        self.logger.info(
            "spreadsheet_read_start", extra={"source_path": path, "sheet": self.sheet}
        )
        try:
            frame = self._load_frame(source)
        except SourceReadError:
            raise
        except pd.errors.EmptyDataError:
            self.logger.warning("spreadsheet_empty", extra={"source_path": path})
            return iter(())
        except (OSError, ValueError, KeyError, csv.Error) as exc:
            raise SourceReadError(
                f"Could not read spreadsheet {path}: {exc}", details={"path": path}
            ) from exc
        self.logger.info(
            "spreadsheet_read_complete",
            extra={"rows": len(frame), "columns": len(frame.columns)},
        )
        return (cell for row in frame.itertuples(index=False) for cell in row)
