from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Any, Dict, Union, Literal

# A raw row maps column name -> None | bool | int | float | str | datetime
RawRow = Dict[str, Any]

ColumnType = Literal['integer', 'float', 'string', 'date', 'boolean']
NUMERIC_TYPES = ('integer', 'float')
CATEGORICAL_TYPES = ('string', 'boolean')


# --- Column statistics (tagged by `type`) ---

class NumericStats(BaseModel):
    type: Literal['integer', 'float']
    count: int
    null_count: int
    min: float
    max: float
    mean: float
    median: float
    std_dev: float  # population standard deviation
    sum: float
    unique_count: int


class TopValue(BaseModel):
    value: str
    count: int
    percentage: float


class StringStats(BaseModel):
    type: Literal['string'] = 'string'
    count: int
    null_count: int
    unique_count: int
    max_length: int
    min_length: int
    top_values: List[TopValue]


class DateStats(BaseModel):
    type: Literal['date'] = 'date'
    count: int
    null_count: int
    earliest: datetime
    latest: datetime
    unique_count: int  # distinct calendar days


class BooleanStats(BaseModel):
    type: Literal['boolean'] = 'boolean'
    count: int
    null_count: int
    true_count: int
    false_count: int
    true_percentage: float


class EmptyStats(BaseModel):
    """Stub for a column without a single usable value."""
    type: ColumnType
    count: int = 0
    null_count: int


ColumnStatistics = Union[NumericStats, StringStats, DateStats, BooleanStats, EmptyStats]


class Dataset(BaseModel):
    model_config = ConfigDict(frozen=True)

    rows: List[RawRow]
    columns: List[str]
    types: Dict[str, ColumnType]
    stats: Dict[str, ColumnStatistics]
    row_count: int


class ParsedData(BaseModel):
    data: List[RawRow]
    columns: List[str]
    types: Dict[str, ColumnType]
    stats: Dict[str, ColumnStatistics]
    row_count: int


# --- Qualitative document (produced by the document analysis collaborator) ---

SentimentLabel = Literal['positive', 'negative', 'neutral']


class Theme(BaseModel):
    name: str
    description: str = ""
    relevance: float = Field(default=0.0, ge=0, le=1)


class SentimentBreakdown(BaseModel):
    positive: float = Field(default=0.0, ge=0, le=1)
    neutral: float = Field(default=1.0, ge=0, le=1)
    negative: float = Field(default=0.0, ge=0, le=1)


class Sentiment(BaseModel):
    overall: SentimentLabel = 'neutral'
    score: float = 0.0
    breakdown: SentimentBreakdown = Field(default_factory=SentimentBreakdown)


class DocumentAnalysis(BaseModel):
    themes: List[Theme]
    sentiment: Sentiment
    keywords: List[str]
    summary: str


class Document(BaseModel):
    content: str = ""
    themes: List[Theme] = []
    sentiment: Optional[Sentiment] = None
    keywords: List[str] = []
    summary: Optional[str] = None


# --- Correlations and insights ---

Strength = Literal['weak', 'moderate', 'strong']


class Correlation(BaseModel):
    type: Literal['numeric', 'thematic', 'sentiment']
    column1: Optional[str] = None
    column2: Optional[str] = None
    theme: Optional[str] = None
    coefficient: Optional[float] = Field(default=None, ge=-1, le=1)
    match_percentage: Optional[float] = None
    strength: Strength
    direction: Optional[Literal['positive', 'negative']] = None
    # Sentiment correlations compare classifications, not signed values
    alignment: Optional[Literal['aligned', 'opposed']] = None
    description: str


class Insight(BaseModel):
    type: Literal['opportunity', 'risk', 'trend', 'pattern']
    title: str
    description: str
    confidence: float = Field(ge=0, le=1)
    related_correlations: List[int] = []


class CorrelationAnalysis(BaseModel):
    correlations: List[Correlation]
    insights: List[Insight]


class CorrelationResult(CorrelationAnalysis):
    narrative: Optional[str] = None


# --- Chart recommendations ---

ChartType = Literal['line', 'bar', 'pie', 'scatter', 'area', 'histogram']
AggregationType = Literal['none', 'sum', 'avg', 'count', 'min', 'max']
ColorTheme = Literal['primary', 'categorical', 'sequential', 'diverging']


class ColumnMetadata(BaseModel):
    name: str
    type: ColumnType
    unique_count: Optional[int] = None
    min: Optional[float] = None
    max: Optional[float] = None
    mean: Optional[float] = None
    median: Optional[float] = None
    null_count: Optional[int] = None


class ChartConfig(BaseModel):
    type: ChartType
    title: str
    description: Optional[str] = None
    x_axis: str
    y_axis: List[str]
    aggregation: AggregationType
    color_theme: ColorTheme = 'primary'
    show_grid: bool = True
    show_legend: bool = False
    show_labels: bool = False
    animated: bool = True
    stacked: Optional[bool] = None
    curved: Optional[bool] = None
    donut: Optional[bool] = None
    confidence: float = Field(ge=0, le=1)
    reasoning: str


class ChartConfigDraft(BaseModel):
    """A possibly incomplete chart configuration (user edited or generated)."""
    type: Optional[ChartType] = None
    title: Optional[str] = None
    description: Optional[str] = None
    x_axis: Optional[str] = None
    y_axis: Optional[List[str]] = None
    aggregation: Optional[AggregationType] = None
    color_theme: Optional[ColorTheme] = None
    show_grid: Optional[bool] = None
    show_legend: Optional[bool] = None
    show_labels: Optional[bool] = None
    animated: Optional[bool] = None
    stacked: Optional[bool] = None
    curved: Optional[bool] = None
    donut: Optional[bool] = None


class ChartRecommendation(BaseModel):
    config: ChartConfig
    priority: int = Field(ge=1, le=5)
    reasoning: str


class ValidationResult(BaseModel):
    valid: bool
    errors: List[str]


class ChartTypeInfo(BaseModel):
    name: str
    description: str
    best_for: str


# --- Dataset queries ---

class PaginatedData(BaseModel):
    data: List[RawRow]
    total: int
    limit: int
    offset: int
    has_more: bool


# --- API payloads ---

class DatasetInput(BaseModel):
    data: List[RawRow]
    columns: Optional[List[str]] = None


class UploadResult(BaseModel):
    filename: str
    columns: List[str]
    types: Dict[str, ColumnType]
    stats: Dict[str, ColumnStatistics]
    row_count: int
    recommendations: List[ChartRecommendation]
    dataset: List[RawRow]


class CorrelationRequest(BaseModel):
    dataset: DatasetInput
    document: Optional[Document] = None
    include_narrative: bool = False


class ChartRecommendRequest(BaseModel):
    columns: List[ColumnMetadata]
    dataset_name: str = "dataset"
    row_count: int = Field(ge=0)


class ChartGenerateRequest(BaseModel):
    chart_type: ChartType
    columns: List[ColumnMetadata]
    title: Optional[str] = None


class ChartValidateRequest(BaseModel):
    config: ChartConfigDraft
    columns: List[ColumnMetadata]


class QueryRequest(BaseModel):
    dataset: DatasetInput
    columns: Optional[List[str]] = None
    limit: int = Field(default=100, ge=1, le=5000)
    offset: int = Field(default=0, ge=0)
    sort_by: Optional[str] = None
    sort_order: Literal['asc', 'desc'] = 'asc'
    filters: Dict[str, Any] = {}


class AggregateRequest(BaseModel):
    dataset: DatasetInput
    aggregation: Literal['sum', 'avg', 'count', 'min', 'max']
    group_by: Optional[str] = None
    columns: Optional[List[str]] = None


class TimeSeriesRequest(BaseModel):
    dataset: DatasetInput
    date_column: str
    value_columns: List[str]
    interval: Literal['day', 'week', 'month', 'year'] = 'day'
