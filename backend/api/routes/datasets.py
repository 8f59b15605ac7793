"""
Dataset API Routes

Endpoints for loading sales data (orders + line items) into sessions.
"""

from datetime import datetime

import polars as pl
from fastapi import APIRouter, File, HTTPException, UploadFile

from api.schemas.responses import DatasetResponse, SessionInfo, SessionKind
from api.sessions import read_csv_upload, require_session
from core.cache import metrics_cache, session_store
from core.csv_parser import csv_parser
from core.logging_config import api_logger as logger


router = APIRouter()


def _create_sales_session(source: str, orders: pl.DataFrame, line_items: pl.DataFrame) -> DatasetResponse:
    enriched = csv_parser.enrich_line_items(orders, line_items)
    matched = csv_parser.count_matched(orders, line_items)

    session_id = csv_parser.generate_session_id(source)
    csv_parser.save_dataframe(enriched, session_id)

    session_store.create(session_id, {
        "kind": SessionKind.SALES.value,
        "source": source,
        "row_count": len(enriched),
        "column_count": len(enriched.columns),
        "columns": enriched.columns,
        "order_count": len(orders),
        "status": "ready",
    })
    logger.info(f"Created sales session {session_id} from {source} ({len(enriched)} line items)")

    return DatasetResponse(
        session_id=session_id,
        source=source,
        order_count=len(orders),
        line_item_count=len(enriched),
        enriched_count=matched,
        columns=enriched.columns,
        message=f"Loaded {len(enriched)} line items from {source}",
    )


@router.post("/datasets", response_model=DatasetResponse)
async def upload_dataset(
    orders: UploadFile = File(..., description="Orders export (*_orders.csv)"),
    line_items: UploadFile = File(..., description="Line items export (*_line-items.csv)"),
) -> DatasetResponse:
    """
    Upload a month's orders and line items.

    Line items are enriched with their order's date, customer, associate,
    channel, status, and fulfillment location.
    """
    orders_content = await read_csv_upload(orders)
    items_content = await read_csv_upload(line_items)

    try:
        orders_df = csv_parser.parse_bytes(orders_content, orders.filename)
        items_df = csv_parser.parse_bytes(items_content, line_items.filename)
    except Exception as e:
        logger.error(f"Could not parse upload: {e}")
        raise HTTPException(status_code=400, detail=f"Could not parse CSV: {str(e)}")

    if items_df.is_empty():
        raise HTTPException(status_code=400, detail="Line items file has no rows")

    try:
        return _create_sales_session(line_items.filename, orders_df, items_df)
    except Exception as e:
        logger.exception("Error creating sales session")
        raise HTTPException(
            status_code=500,
            detail=f"Error processing files: {str(e)}"
        )


@router.post("/datasets/local/{year}/{month}", response_model=DatasetResponse)
async def load_local_month(year: int, month: int) -> DatasetResponse:
    """Load one month of exports from the configured data directory."""
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail="Month must be between 1 and 12")

    directory = csv_parser.month_directory(year, month)
    orders_df, items_df = csv_parser.load_month(year, month)
    if items_df.is_empty():
        raise HTTPException(status_code=404, detail=f"No line items found in {directory}")

    try:
        return _create_sales_session(f"{year}-{month:02d}", orders_df, items_df)
    except Exception as e:
        logger.exception("Error creating sales session")
        raise HTTPException(status_code=500, detail=str(e))


def _session_info(session_id: str, session: dict) -> SessionInfo:
    return SessionInfo(
        session_id=session_id,
        kind=session.get("kind", SessionKind.SALES.value),
        source=session.get("source", "unknown"),
        created_at=datetime.fromtimestamp(session.get("created_at", 0)),
        row_count=session.get("row_count", 0),
        column_count=session.get("column_count", 0),
        columns=session.get("columns", []),
        status=session.get("status", "unknown"),
    )


@router.get("/datasets", response_model=list[SessionInfo])
async def list_datasets() -> list[SessionInfo]:
    """List active sessions of both kinds."""
    infos = []
    for session_id in session_store.list_sessions():
        session = session_store.get(session_id)
        if session is not None:
            infos.append(_session_info(session_id, session))
    return infos


@router.get("/datasets/{session_id}", response_model=SessionInfo)
async def get_dataset(session_id: str) -> SessionInfo:
    """Get session information."""
    return _session_info(session_id, require_session(session_id))


@router.delete("/datasets/{session_id}")
async def delete_dataset(session_id: str) -> dict:
    """Delete a session, its data file, and its cached metrics."""
    if not session_store.delete(session_id):
        raise HTTPException(status_code=404, detail="Session not found")

    csv_parser.delete_session(session_id)
    dropped = metrics_cache.delete_prefix(f"{session_id}:")

    return {
        "message": f"Session {session_id} deleted successfully",
        "cached_metrics_dropped": dropped,
    }
