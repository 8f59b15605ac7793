"""
Metrics API Routes

Business metrics and KPIs over a sales session's enriched line items.
Session datasets never change, so results are cached per session.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from api.schemas.responses import AttachRateResponse, MetricResponse, SessionKind
from api.sessions import require_session, session_rows
from calculations.aggregations import normalized_attach_rate
from calculations.registry import CALCULATION_CATEGORIES, UnknownMetricError, available_metrics, compute_metric
from core.cache import metrics_cache
from core.logging_config import api_logger as logger


router = APIRouter()


@router.get("/metrics")
async def list_metrics() -> dict:
    """Registered metric names and calculation categories."""
    return {"metrics": available_metrics(), "categories": CALCULATION_CATEGORIES}


@router.get("/metrics/{session_id}/attach-rate", response_model=AttachRateResponse)
async def get_attach_rate(
    session_id: str,
    product: str = Query(..., min_length=1, description="Product name"),
    reference: Optional[list[str]] = Query(default=None, description="Reference product names"),
) -> AttachRateResponse:
    """
    Attach rate of a product as a percentage.

    Without reference products: share of the product's orders holding
    another product. With them: share of the reference products' orders
    that also hold the product.
    """
    require_session(session_id, SessionKind.SALES)
    line_items = session_rows(session_id)

    return AttachRateResponse(
        session_id=session_id,
        product_name=product,
        reference_products=reference or [],
        attach_rate=normalized_attach_rate(line_items, product, reference),
    )


@router.get("/metrics/{session_id}/{metric}", response_model=MetricResponse)
async def get_metric(
    session_id: str,
    metric: str,
    limit: Optional[int] = Query(default=None, ge=1, le=1000, description="Entries to return"),
    time_field: Optional[str] = Query(default=None, description="Timestamp column"),
    period_field: Optional[str] = Query(default=None, description="Period column for revenue-by-period"),
    group_field: Optional[str] = Query(default=None, description="Group column for revenue-per-unit"),
    sort_by: Optional[str] = Query(default=None, pattern="^(attach_rate|velocity)$"),
    descending: bool = Query(default=True),
    days: Optional[int] = Query(default=None, ge=1, description="Velocity window in days"),
    start: Optional[str] = Query(default=None, description="Velocity window start"),
    end: Optional[str] = Query(default=None, description="Velocity window end"),
) -> MetricResponse:
    """Compute a named metric (see GET /metrics for names)."""
    require_session(session_id, SessionKind.SALES)

    params = {
        k: v
        for k, v in {
            "limit": limit,
            "time_field": time_field,
            "period_field": period_field,
            "group_field": group_field,
            "sort_by": sort_by,
            "descending": descending,
            "days": days,
            "start": start,
            "end": end,
        }.items()
        if v is not None
    }

    cache_key = metrics_cache.make_session_key(session_id, metric, **params)
    cached = metrics_cache.get(cache_key)
    if cached is not None:
        return MetricResponse(session_id=session_id, metric=metric, params=params, data=cached, cached=True)

    line_items = session_rows(session_id)
    try:
        data = compute_metric(metric, line_items, params)
    except UnknownMetricError:
        raise HTTPException(status_code=404, detail=f"Unknown metric: {metric}")
    except Exception as e:
        logger.exception(f"Error computing {metric}")
        raise HTTPException(status_code=500, detail=f"Error computing metric: {str(e)}")

    metrics_cache.set(cache_key, data)
    return MetricResponse(session_id=session_id, metric=metric, params=params, data=data)
