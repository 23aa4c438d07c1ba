import re
import logging
from datetime import datetime, timedelta
from io import BytesIO
from pathlib import Path
from typing import Any, List, Tuple

import pandas as pd
from fastapi import UploadFile, HTTPException
from openpyxl import load_workbook

from correlab.core.config import get_settings
from correlab.core.errors import ErrorCodes, get_error_response
from correlab.core.performance import track_performance
from correlab.core.sanitization import sanitize_filename, validate_column_name, clean_column_name
from correlab.core.schemas import ParsedData, RawRow
from correlab.services.profiler import profile_dataset
from correlab.services.values import is_missing

logger = logging.getLogger(__name__)

# Allowed file extensions
ALLOWED_EXTENSIONS = {'.csv', '.xlsx', '.xls'}
DOCUMENT_EXTENSIONS = {'.txt', '.md'}

# MIME type mapping for validation
MIME_TYPE_MAP = {
    'text/csv': '.csv',
    'application/vnd.ms-excel': '.xls',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet': '.xlsx',
}

DANGEROUS_MIME_TYPES = {
    'application/x-executable',
    'application/x-sharedlib',
    'application/x-msdownload',
    'text/html',
    'application/javascript',
}

# Excel serial day numbers between 1970-01-01 and 9999-12-31
EXCEL_EPOCH_SERIAL = 25569
EXCEL_MAX_SERIAL = 2958466
DATE_HEADER_PATTERN = re.compile(r'date|time', re.IGNORECASE)


def _bad_request(code: str, detail: str = None, status_code: int = 400) -> HTTPException:
    return HTTPException(status_code=status_code, detail=get_error_response(code, detail))


def validate_file_extension(filename: str, allowed: set = ALLOWED_EXTENSIONS) -> str:
    """
    Validate and return the lowercase file extension.

    Raises HTTPException when it is missing or not allowed.
    """
    if not filename:
        raise _bad_request(ErrorCodes.INVALID_FILE_TYPE, "Filename is required.")

    file_ext = Path(filename).suffix.lower()

    if not file_ext:
        raise _bad_request(ErrorCodes.INVALID_FILE_TYPE, "File must have an extension.")

    if file_ext not in allowed:
        raise _bad_request(
            ErrorCodes.INVALID_FILE_TYPE,
            f"Unsupported file format: {file_ext}. Allowed formats: {', '.join(sorted(allowed))}"
        )

    return file_ext


def validate_mime_type(content_type: str, file_ext: str) -> None:
    """
    Reject dangerous MIME types; a mismatch with the extension is only logged.
    """
    if not content_type:
        return

    expected_ext = MIME_TYPE_MAP.get(content_type.lower())
    if expected_ext and expected_ext != file_ext:
        logger.warning(f"MIME type {content_type} doesn't match extension {file_ext}")

    if content_type.lower() in DANGEROUS_MIME_TYPES:
        raise _bad_request(ErrorCodes.INVALID_FILE_TYPE, f"File type '{content_type}' is not allowed.")


def validate_file_size(contents: bytes) -> None:
    settings = get_settings()
    if len(contents) == 0:
        raise _bad_request(ErrorCodes.FILE_EMPTY)
    if len(contents) > settings.max_file_size_bytes:
        raise _bad_request(
            ErrorCodes.FILE_TOO_LARGE,
            f"Maximum size is {settings.max_file_size_mb}MB. Your file is {len(contents) / 1024 / 1024:.2f}MB",
            status_code=413
        )


def dedupe_columns(names: List[str]) -> List[str]:
    """Suffix repeated names with .1, .2, ... so every column keeps its values."""
    seen = {}
    result = []
    for name in names:
        if name in seen:
            seen[name] += 1
            name = f"{name}.{seen[name]}"
        else:
            seen[name] = 0
        result.append(name)
    return result


def _read_csv_frame(contents: bytes) -> pd.DataFrame:
    try:
        return pd.read_csv(BytesIO(contents), skip_blank_lines=True)
    except UnicodeDecodeError:
        logger.info("CSV is not valid UTF-8, retrying as latin-1")
        return pd.read_csv(BytesIO(contents), skip_blank_lines=True, encoding='latin-1')


def parse_csv(contents: bytes) -> Tuple[List[RawRow], List[str]]:
    """
    Parse CSV bytes into rows, using the first line as the header.

    Numbers and booleans are typed by pandas; empty cells become None.
    """
    try:
        df = _read_csv_frame(contents)
    except pd.errors.EmptyDataError:
        raise _bad_request(ErrorCodes.FILE_EMPTY)
    except (pd.errors.ParserError, UnicodeDecodeError, ValueError) as e:
        logger.error(f"Error parsing CSV file: {e}")
        raise _bad_request(ErrorCodes.PARSE_ERROR, "Please ensure the CSV file is properly formatted.")

    columns = [
        clean_column_name(None if str(name).startswith('Unnamed: ') else name, position)
        for position, name in enumerate(df.columns, start=1)
    ]
    df.columns = dedupe_columns(columns)
    df = df.astype(object).where(pd.notna(df), None)

    return df.to_dict(orient='records'), list(df.columns)


def _unmerge_cells(ws) -> None:
    """Fill every cell of a merged range with the range's top-left value."""
    merged_ranges = list(ws.merged_cells.ranges)
    for merged_range in merged_ranges:
        top_left_value = ws.cell(merged_range.min_row, merged_range.min_col).value
        ws.unmerge_cells(str(merged_range))
        for row in range(merged_range.min_row, merged_range.max_row + 1):
            for col in range(merged_range.min_col, merged_range.max_col + 1):
                ws.cell(row, col, top_left_value)

    if merged_ranges:
        logger.info(f"Unmerged {len(merged_ranges)} cell ranges in sheet '{ws.title}'")


def excel_serial_to_datetime(value: Any) -> Any:
    """Convert an Excel serial day number to a datetime; other values pass through."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    if EXCEL_EPOCH_SERIAL < value < EXCEL_MAX_SERIAL:
        return datetime(1970, 1, 1) + timedelta(days=value - EXCEL_EPOCH_SERIAL)
    return value


def _rows_from_values(values: List[Tuple[Any, ...]]) -> Tuple[List[RawRow], List[str]]:
    header = list(values[0]) if values else []
    while header and is_missing(header[-1]):
        header.pop()
    if not header:
        raise _bad_request(ErrorCodes.PARSE_ERROR, "No columns found in the first row of the worksheet.")

    columns = dedupe_columns([clean_column_name(name, i) for i, name in enumerate(header, start=1)])
    date_columns = {c for c in columns if DATE_HEADER_PATTERN.search(c)}

    rows = []
    for raw in values[1:]:
        cells = list(raw[:len(columns)]) + [None] * max(0, len(columns) - len(raw))
        if all(is_missing(v) for v in cells):
            continue
        row = {}
        for column, value in zip(columns, cells):
            if column in date_columns:
                value = excel_serial_to_datetime(value)
            row[column] = None if is_missing(value) else value
        rows.append(row)

    return rows, columns


def parse_excel(contents: bytes, file_ext: str = '.xlsx') -> Tuple[List[RawRow], List[str]]:
    """
    Parse the first worksheet of an Excel file into rows.

    Formula cells contribute their cached values; merged ranges are
    filled from their top-left cell; fully empty rows are skipped.
    """
    try:
        if file_ext == '.xls':
            df = pd.read_excel(BytesIO(contents), sheet_name=0, header=None)
            df = df.astype(object).where(pd.notna(df), None)
            values = [tuple(r) for r in df.itertuples(index=False)]
        else:
            wb = load_workbook(BytesIO(contents), data_only=True)
            if not wb.worksheets:
                raise _bad_request(ErrorCodes.PARSE_ERROR, "No worksheets found in Excel file.")
            ws = wb.worksheets[0]
            _unmerge_cells(ws)
            values = list(ws.iter_rows(values_only=True))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error parsing Excel file: {e}")
        raise _bad_request(ErrorCodes.PARSE_ERROR, "Please ensure the Excel file is not corrupted.")

    return _rows_from_values(values)


def validate_file_content(rows: List[RawRow], columns: List[str]) -> None:
    """
    Check column count, column names and cell sizes of parsed content.

    Raises:
        HTTPException: If content validation fails
    """
    settings = get_settings()

    if len(columns) > settings.max_file_columns:
        raise _bad_request(
            ErrorCodes.PARSE_ERROR,
            f"File contains too many columns ({len(columns)}). Maximum allowed: {settings.max_file_columns} columns."
        )

    for column in columns:
        if not validate_column_name(column):
            raise _bad_request(ErrorCodes.PARSE_ERROR, f"Invalid column name: '{column}'.")

    for row in rows:
        for column, value in row.items():
            if isinstance(value, str) and len(value.encode('utf-8')) > settings.max_cell_size_bytes:
                raise _bad_request(
                    ErrorCodes.PARSE_ERROR,
                    f"Column '{column}' contains a value larger than {settings.max_cell_size_bytes} bytes."
                )


@track_performance("parse_bytes")
def parse_bytes(contents: bytes, filename: str) -> ParsedData:
    """
    Parse and profile a tabular file.

    Stored rows are capped at MAX_DATASET_ROWS; statistics describe the
    stored rows.
    """
    file_ext = validate_file_extension(filename)
    validate_file_size(contents)

    if file_ext == '.csv':
        rows, columns = parse_csv(contents)
    else:
        rows, columns = parse_excel(contents, file_ext)

    if not rows:
        raise _bad_request(ErrorCodes.FILE_EMPTY, "No data rows were found below the header.")

    validate_file_content(rows, columns)

    max_rows = get_settings().max_dataset_rows
    if len(rows) > max_rows:
        logger.info(f"Dataset truncated from {len(rows)} to {max_rows} rows")
        rows = rows[:max_rows]

    dataset = profile_dataset(rows, columns)
    logger.info(f"Successfully parsed file: {sanitize_filename(filename)}, {dataset.row_count} rows x {len(columns)} columns")

    return ParsedData(
        data=dataset.rows,
        columns=dataset.columns,
        types=dataset.types,
        stats=dataset.stats,
        row_count=dataset.row_count
    )


async def parse_upload(file: UploadFile) -> ParsedData:
    """
    Parse an uploaded CSV/Excel file.
    Validates file extension and MIME type before reading.
    """
    file_ext = validate_file_extension(file.filename)
    validate_mime_type(file.content_type, file_ext)

    contents = await file.read()
    return parse_bytes(contents, file.filename)


def decode_text(contents: bytes) -> str:
    try:
        return contents.decode('utf-8')
    except UnicodeDecodeError:
        return contents.decode('latin-1')


async def read_text_document(file: UploadFile) -> str:
    """Read an uploaded .txt/.md document as text."""
    validate_file_extension(file.filename, DOCUMENT_EXTENSIONS)
    validate_mime_type(file.content_type, Path(file.filename).suffix.lower())

    contents = await file.read()
    if contents:
        validate_file_size(contents)

    text = decode_text(contents).strip()
    if not text:
        raise _bad_request(ErrorCodes.DOCUMENT_EMPTY)

    logger.info(f"Read document {sanitize_filename(file.filename)}: {len(text)} characters")
    return text
