"""
API Response Schemas

Pydantic models for API responses.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

import numpy as np
from pydantic import BaseModel, Field, field_serializer


def convert_numpy(obj: Any) -> Any:
    """Convert numpy types to Python native types."""
    if obj is None:
        return None
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, dict):
        return {k: convert_numpy(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [convert_numpy(v) for v in obj]
    if isinstance(obj, set):
        return [convert_numpy(v) for v in sorted(obj, key=str)]
    return obj


class SessionKind(str, Enum):
    """What a session holds."""

    SALES = "sales"
    CATALOG = "catalog"


class SessionInfo(BaseModel):
    """Session information."""

    session_id: str
    kind: SessionKind
    source: str
    created_at: datetime
    row_count: int
    column_count: int
    columns: list[str]
    status: str


class DatasetResponse(BaseModel):
    """Sales dataset load response."""

    session_id: str
    source: str
    order_count: int
    line_item_count: int
    enriched_count: int = Field(..., description="Line items matched to an order")
    columns: list[str]
    message: str


class CatalogResponse(BaseModel):
    """Catalog upload response."""

    session_id: str
    filename: str
    product_count: int
    columns: list[str]
    message: str


class MetricResponse(BaseModel):
    """A computed metric."""

    session_id: str
    metric: str
    params: dict[str, Any] = {}
    data: Any
    cached: bool = False

    @field_serializer("data")
    @classmethod
    def serialize_data(cls, v: Any) -> Any:
        return convert_numpy(v)


class AttachRateResponse(BaseModel):
    """Attach rate of one product."""

    session_id: str
    product_name: str
    reference_products: list[str] = []
    attach_rate: float = Field(..., description="Percentage, 0-100")


class DiscoveryRunResponse(BaseModel):
    """Result of one discovery pass."""

    session_id: str
    pass_number: int
    pattern_count: int
    patterns: list[dict[str, Any]]
    progress: dict[str, Any]
    processing_time_ms: float


class SurveyResponse(BaseModel):
    """Survey-ready patterns of the current pass."""

    session_id: str
    pass_number: int
    patterns: list[dict[str, Any]]


class LearningResponse(BaseModel):
    """Exported Layer-2 learning tables."""

    customClassifications: dict[str, dict[str, Any]] = {}
    classificationPatterns: dict[str, list[str]] = {}
    timestamp: Optional[str] = None


class GroupingResponse(BaseModel):
    """Grouped products and their flattened tables."""

    session_id: str
    strategy: dict[str, Any]
    variant_names: bool = Field(..., description="Product names carry variant suffixes")
    products: list[dict[str, Any]]
    collapsed: dict[str, dict[str, Any]] = Field(default={}, description="Product name -> collapsed table")
    expanded: dict[str, dict[str, Any]] = Field(default={}, description="Product name -> expanded table")
    sortable_columns: list[dict[str, str]] = []
