"""
Tabular file extraction for spreadsheet imports.

Turns an uploaded file into ordered headers and row records keyed by those
headers. The first sheet of a workbook is used; the first row is the header.
"""

from io import BytesIO
from pathlib import Path
from typing import Optional, Union
import structlog

import pandas as pd

from exceptions import ExtractionError
from models.import_rows import CellValue, TabularData

logger = structlog.get_logger(__name__)

EXCEL_EXTENSIONS = {".xlsx", ".xlsm", ".xls"}
DELIMITED_EXTENSIONS = {".csv": ",", ".tsv": "\t", ".txt": None}
TEXT_ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")


def extract_table(
    file: Union[bytes, BytesIO, str, Path],
    file_name: Optional[str] = None,
    max_rows: Optional[int] = None,
) -> TabularData:
    """
    Extract headers and rows from a spreadsheet or delimited text file.

    Args:
        file: File content (bytes/BytesIO) or a path
        file_name: Original file name, used to pick the format
        max_rows: Reject files with more data rows than this

    Returns:
        TabularData with headers in file order and one dict per non-empty row

    Raises:
        ExtractionError: If the file cannot be read or the format is unsupported
    """
    if isinstance(file, (str, Path)):
        file_name = file_name or str(file)
        source = BytesIO(Path(file).read_bytes())
    elif isinstance(file, bytes):
        source = BytesIO(file)
    else:
        source = file

    extension = Path(file_name or "").suffix.lower()
    logger.info("extracting_table", file_name=file_name, extension=extension)

    if extension in EXCEL_EXTENSIONS:
        df = _read_excel(source)
    elif extension in DELIMITED_EXTENSIONS:
        df = _read_delimited(source, DELIMITED_EXTENSIONS[extension])
    else:
        raise ExtractionError(
            message="Unsupported file type. Upload .xlsx, .xls or .csv",
            details={"file_name": file_name}
        )

    headers = _unique_headers(df.columns)

    rows: list[dict[str, CellValue]] = []
    for values in df.itertuples(index=False, name=None):
        cells = {h: CellValue.from_raw(v) for h, v in zip(headers, values)}
        # Skip blank lines
        if all(not c.is_number and not str(c.value).strip() for c in cells.values()):
            continue
        rows.append(cells)

    if max_rows is not None and len(rows) > max_rows:
        raise ExtractionError(
            message=f"File has {len(rows)} rows, the limit is {max_rows}",
            details={"row_count": len(rows), "max_rows": max_rows}
        )

    logger.info(
        "table_extracted",
        file_name=file_name,
        header_count=len(headers),
        row_count=len(rows)
    )

    return TabularData(headers=headers, rows=rows)


def _read_excel(source) -> pd.DataFrame:
    """Read the first sheet of a workbook, keeping cell types."""
    try:
        return pd.read_excel(source, sheet_name=0, dtype=object, keep_default_na=False)
    except Exception as e:
        logger.error("excel_read_failed", error=str(e))
        raise ExtractionError(
            message="Failed to parse file. Please ensure it's a valid Excel file.",
            details={"original_error": str(e)}
        ) from e


def _read_delimited(source: BytesIO, separator: Optional[str]) -> pd.DataFrame:
    """Read delimited text; sniff the separator when it is not known."""
    raw = source.getvalue()

    last_error: Optional[Exception] = None
    for encoding in TEXT_ENCODINGS:
        try:
            return pd.read_csv(
                BytesIO(raw),
                sep=separator,
                engine="python",
                dtype=str,
                keep_default_na=False,
                encoding=encoding,
                skip_blank_lines=True,
            )
        except pd.errors.EmptyDataError as e:
            raise ExtractionError(message="No data found in the file") from e
        except UnicodeDecodeError as e:
            last_error = e
            continue
        except Exception as e:
            logger.error("delimited_read_failed", error=str(e))
            raise ExtractionError(
                message="Failed to parse delimited file",
                details={"original_error": str(e)}
            ) from e

    raise ExtractionError(
        message="File encoding not recognised",
        details={"original_error": str(last_error)}
    )


def _unique_headers(columns) -> list[str]:
    """Header labels in file order, suffixed when two collide after trimming."""
    headers: list[str] = []
    seen: set[str] = set()
    for idx, col in enumerate(columns):
        label = _header_label(col, idx)
        candidate = label
        suffix = 1
        while candidate in seen:
            candidate = f"{label}.{suffix}"
            suffix += 1
        seen.add(candidate)
        headers.append(candidate)
    return headers


def _header_label(column, index: int) -> str:
    """
    Header text for a column.

    Blank headers come back from pandas as "Unnamed: N"; give them a neutral
    label so the substring matcher cannot bind them through "name".
    """
    label = str(column).strip()
    if not label or label.startswith("Unnamed:"):
        return f"Column {index + 1}"
    return label
