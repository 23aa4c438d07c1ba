import logging
from typing import Any, Dict, List, Union

from fastapi import APIRouter, UploadFile, File, HTTPException, Request

from correlab.core.config import get_settings
from correlab.core.errors import ErrorCodes, get_error_response
from correlab.core.rate_limit import limiter, upload_rate_limit
from correlab.core.sanitization import sanitize_filename, sanitize_for_logging
from correlab.core.schemas import (
    AggregateRequest, ChartConfigDraft, ChartGenerateRequest, ChartRecommendRequest,
    ChartRecommendation, ChartTypeInfo, ChartValidateRequest, CorrelationRequest,
    CorrelationResult, Dataset, DatasetInput, DocumentAnalysis, PaginatedData, QueryRequest,
    TimeSeriesRequest, UploadResult, ValidationResult
)
from correlab.services import correlation
from correlab.services.aggregation import aggregate, paginate, time_series
from correlab.services.document_analysis import HeuristicDocumentAnalyzer, analyze_document
from correlab.services.inference import (
    CHART_TYPE_INFO, analyze_columns, generate_config, recommend_charts, validate_config
)
from correlab.services.narrative import generate_narrative
from correlab.services.parser import parse_upload, read_text_document
from correlab.services.profiler import profile_dataset

logger = logging.getLogger(__name__)

router = APIRouter()


def _error(request: Request, code: str, detail: str = None, status_code: int = 400) -> HTTPException:
    error_info = get_error_response(code, detail)
    error_info['correlation_id'] = getattr(request.state, 'correlation_id', 'unknown')
    return HTTPException(status_code=status_code, detail=error_info)


def _profile_input(payload: DatasetInput, request: Request) -> Dataset:
    """Profile rows sent in a JSON body."""
    max_rows = get_settings().max_dataset_rows
    if len(payload.data) > max_rows:
        raise _error(request, ErrorCodes.INVALID_REQUEST, f"Datasets are limited to {max_rows} rows.")
    return profile_dataset(payload.data, payload.columns)


@router.get("/health")
async def health_check():
    return {"status": "ok"}


async def _process_upload(file: UploadFile, request: Request) -> UploadResult:
    """Parse, profile and recommend charts for an uploaded file (no rate limiting)."""
    safe_filename = sanitize_filename(file.filename) if file.filename else 'unknown'
    logger.info(f"Processing file: {sanitize_for_logging(safe_filename)}")

    parsed = await parse_upload(file)
    columns = analyze_columns(parsed.columns, parsed.types, parsed.stats)
    recommendations = recommend_charts(columns, safe_filename, parsed.row_count)

    logger.info(
        f"Successfully processed file: {sanitize_for_logging(safe_filename)}, "
        f"generated {len(recommendations)} chart recommendations"
    )
    return UploadResult(
        filename=safe_filename,
        columns=parsed.columns,
        types=parsed.types,
        stats=parsed.stats,
        row_count=parsed.row_count,
        recommendations=recommendations,
        dataset=parsed.data
    )


@router.post("/upload", response_model=UploadResult)
@limiter.limit(upload_rate_limit)
async def upload_file(request: Request, file: UploadFile = File(...)):
    """
    Upload a CSV or Excel file for profiling and chart recommendations.

    Rate limited per client IP (RATE_LIMIT_PER_MINUTE).
    """
    try:
        return await _process_upload(file, request)
    except HTTPException:
        raise
    except Exception as e:
        safe_filename = sanitize_for_logging(sanitize_filename(file.filename) if file.filename else 'unknown')
        logger.error(f"Unexpected error processing file {safe_filename}: {e}", exc_info=True)
        raise _error(request, ErrorCodes.PROCESSING_ERROR, status_code=500)


@router.post("/documents/analyze", response_model=DocumentAnalysis)
async def analyze_document_endpoint(request: Request, file: UploadFile = File(...), skip_ai: bool = False):
    """
    Extract themes, sentiment, keywords and a summary from a text document.

    Falls back to local heuristics when the AI providers fail or skip_ai is set.
    """
    content = await read_text_document(file)
    analyzer = HeuristicDocumentAnalyzer() if skip_ai else None
    return analyze_document(content, analyzer)


@router.post("/correlations", response_model=CorrelationResult)
def correlations_endpoint(payload: CorrelationRequest, request: Request):
    """Correlations and insights for a dataset, optionally against an analyzed document."""
    dataset = _profile_input(payload.dataset, request)
    try:
        analysis = correlation.analyze(dataset, payload.document)
    except ValueError as e:
        raise _error(request, ErrorCodes.INVALID_REQUEST, str(e))

    narrative = None
    if payload.include_narrative:
        narrative = generate_narrative(analysis.correlations, analysis.insights, payload.document is not None)

    return CorrelationResult(correlations=analysis.correlations, insights=analysis.insights, narrative=narrative)


@router.post("/charts/recommend", response_model=List[ChartRecommendation])
def recommend_charts_endpoint(payload: ChartRecommendRequest):
    return recommend_charts(payload.columns, payload.dataset_name, payload.row_count)


@router.post("/charts/generate", response_model=ChartConfigDraft)
def generate_chart_endpoint(payload: ChartGenerateRequest):
    return generate_config(payload.chart_type, payload.columns, payload.title)


@router.post("/charts/validate", response_model=ValidationResult)
def validate_chart_endpoint(payload: ChartValidateRequest):
    return validate_config(payload.config, payload.columns)


@router.get("/charts/types", response_model=Dict[str, ChartTypeInfo])
def chart_types_endpoint():
    return CHART_TYPE_INFO


@router.post("/datasets/query", response_model=PaginatedData)
def query_dataset(payload: QueryRequest, request: Request):
    dataset = _profile_input(payload.dataset, request)
    try:
        return paginate(
            dataset,
            columns=payload.columns,
            limit=payload.limit,
            offset=payload.offset,
            sort_by=payload.sort_by,
            sort_order=payload.sort_order,
            filters=payload.filters
        )
    except ValueError as e:
        raise _error(request, ErrorCodes.INVALID_REQUEST, str(e))


@router.post("/datasets/aggregate")
def aggregate_dataset(payload: AggregateRequest, request: Request) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
    dataset = _profile_input(payload.dataset, request)
    try:
        return aggregate(dataset, payload.aggregation, payload.group_by, payload.columns)
    except ValueError as e:
        raise _error(request, ErrorCodes.INVALID_REQUEST, str(e))


@router.post("/datasets/timeseries")
def time_series_dataset(payload: TimeSeriesRequest, request: Request) -> List[Dict[str, Any]]:
    dataset = _profile_input(payload.dataset, request)
    try:
        return time_series(dataset, payload.date_column, payload.value_columns, payload.interval)
    except ValueError as e:
        raise _error(request, ErrorCodes.INVALID_REQUEST, str(e))
