"""
Error codes and user-facing error bodies.
"""
from typing import Dict, Optional


class ErrorCodes:
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    FILE_EMPTY = "FILE_EMPTY"
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
    PARSE_ERROR = "PARSE_ERROR"
    DOCUMENT_EMPTY = "DOCUMENT_EMPTY"
    INVALID_REQUEST = "INVALID_REQUEST"
    PROCESSING_ERROR = "PROCESSING_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    TIMEOUT = "TIMEOUT"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    ErrorCodes.FILE_TOO_LARGE: {
        "message": "Your file is too large",
        "detail": "The upload exceeds the size limit for a single dataset.",
        "suggestion": "Split the file or export only the columns you need, then upload again."
    },
    ErrorCodes.FILE_EMPTY: {
        "message": "Your file looks empty",
        "detail": "We couldn't find any rows in the uploaded file.",
        "suggestion": "Check that the file was saved with its data and a header row."
    },
    ErrorCodes.INVALID_FILE_TYPE: {
        "message": "Unsupported file type",
        "detail": "Datasets must be CSV or Excel files (.csv, .xlsx, .xls); documents must be .txt or .md.",
        "suggestion": "Export the data as CSV from your spreadsheet tool and try again."
    },
    ErrorCodes.PARSE_ERROR: {
        "message": "We couldn't read your file",
        "detail": "The file format looks damaged or unexpected.",
        "suggestion": "Save the file again as a fresh CSV or Excel workbook with headers in the first row."
    },
    ErrorCodes.DOCUMENT_EMPTY: {
        "message": "Your document has no text",
        "detail": "There is nothing to analyze in the uploaded document.",
        "suggestion": "Upload a plain-text document with some content."
    },
    ErrorCodes.INVALID_REQUEST: {
        "message": "The request could not be processed",
        "detail": "Some of the submitted values don't match the dataset.",
        "suggestion": "Check the column names and parameters you sent."
    },
    ErrorCodes.PROCESSING_ERROR: {
        "message": "Something went wrong while analyzing",
        "detail": "We hit a problem while computing statistics for your data.",
        "suggestion": "Remove completely empty rows or columns and try again."
    },
    ErrorCodes.RATE_LIMIT_EXCEEDED: {
        "message": "Too many requests",
        "detail": "You're sending requests faster than the service allows.",
        "suggestion": "Wait about a minute and try again."
    },
    ErrorCodes.TIMEOUT: {
        "message": "This is taking longer than expected",
        "detail": "The analysis did not finish within the request time limit.",
        "suggestion": "Try a smaller sample of your data."
    },
    ErrorCodes.UNKNOWN_ERROR: {
        "message": "Something unexpected happened",
        "detail": "We encountered an issue we weren't expecting.",
        "suggestion": "Give it another try in a moment."
    }
}


def get_error_response(error_code: str, additional_detail: Optional[str] = None) -> Dict[str, str]:
    """
    Build the error body for an error code.

    Args:
        error_code: One of the ErrorCodes constants
        additional_detail: Optional additional detail to append

    Returns:
        Dictionary with code, message, detail, and suggestion
    """
    error_info = ERROR_MESSAGES.get(error_code, ERROR_MESSAGES[ErrorCodes.UNKNOWN_ERROR])

    response = {
        "code": error_code,
        "message": error_info["message"],
        "detail": error_info["detail"],
        "suggestion": error_info["suggestion"]
    }

    if additional_detail:
        response["detail"] = f"{response['detail']} {additional_detail}"

    return response
