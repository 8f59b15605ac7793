"""
Grouping API Routes

Product -> Color -> Size grouping of a sales session's line items.
"""

from fastapi import APIRouter, HTTPException

from api.schemas.requests import GroupingRequest
from api.schemas.responses import GroupingResponse, SessionKind
from api.sessions import require_session, session_rows
from core.logging_config import api_logger as logger
from grouping.strategies import (
    create_grouping_config,
    detect_best_grouping,
    get_available_strategies,
    has_variant_names,
    validate_grouping_config,
)
from grouping.variants import (
    create_collapsed_table,
    create_expanded_table,
    generate_product_config,
    get_sortable_columns,
)


router = APIRouter()


@router.get("/grouping/strategies")
async def list_strategies() -> dict:
    return {"strategies": get_available_strategies()}


@router.post("/grouping/{session_id}/products", response_model=GroupingResponse)
async def group_products(session_id: str, request: GroupingRequest) -> GroupingResponse:
    """
    Group line items into products, color variants, and size rows.

    Each product also gets its collapsed and expanded tables, flattened
    color-first or size-first according to `sort_column`.
    """
    require_session(session_id, SessionKind.SALES)
    rows = session_rows(session_id)

    strategy_id = request.strategy_id or detect_best_grouping(rows)
    config = create_grouping_config(strategy_id, request.custom_options)
    if strategy_id == "none":
        config["id"] = "none"
    if not validate_grouping_config(config):
        raise HTTPException(status_code=400, detail="Invalid grouping configuration")

    try:
        products = generate_product_config({"rows": rows}, config)["products"]
    except Exception as e:
        logger.exception("Grouping failed")
        raise HTTPException(status_code=500, detail=f"Error grouping products: {str(e)}")

    if request.product is not None:
        products = [p for p in products if p["name"] == request.product]

    return GroupingResponse(
        session_id=session_id,
        strategy=config,
        variant_names=has_variant_names(rows),
        products=products,
        collapsed={p["name"]: create_collapsed_table(p["variants"], request.sort_column) for p in products},
        expanded={p["name"]: create_expanded_table(p["variants"], request.sort_column) for p in products},
        sortable_columns=get_sortable_columns(),
    )
