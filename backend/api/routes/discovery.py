"""
Discovery API Routes

Catalog pattern discovery, survey patterns, the full-catalog report, and
Layer-2 questionnaires.

Each catalog session owns one discovery engine and one question generator.
Runs on the same session are serialized with the session lock.
"""

import time
from typing import Any

from fastapi import APIRouter, File, HTTPException, UploadFile

from api.schemas.requests import DiscoveryRunRequest, LearningImport, QuestionsRequest, ResponsesRequest
from api.schemas.responses import (
    CatalogResponse,
    DiscoveryRunResponse,
    LearningResponse,
    SessionKind,
    SurveyResponse,
)
from api.sessions import read_csv_upload, require_session, session_rows
from core.cache import metrics_cache, session_store
from core.csv_parser import csv_parser
from core.logging_config import api_logger as logger
from discovery.catalog import analyze_full_catalog
from discovery.combinations import find_combinations
from discovery.engine import DiscoveryOptions, PatternDiscoveryEngine
from discovery.questions import Layer2QuestionGenerator, PatternRequiredError


router = APIRouter()


def _catalog_products(session_id: str) -> list[dict[str, Any]]:
    require_session(session_id, SessionKind.CATALOG)
    rows = session_rows(session_id)
    return session_store.get_object(
        session_id,
        "products",
        lambda: [csv_parser.normalize_catalog_row(row, i) for i, row in enumerate(rows)],
    )


def _engine(session_id: str) -> PatternDiscoveryEngine:
    return session_store.get_object(session_id, "engine", PatternDiscoveryEngine)


def _generator(session_id: str) -> Layer2QuestionGenerator:
    return session_store.get_object(session_id, "generator", Layer2QuestionGenerator)


@router.post("/discovery/catalog", response_model=CatalogResponse)
async def upload_catalog(file: UploadFile = File(..., description="Catalog export CSV")) -> CatalogResponse:
    """Upload a product catalog for pattern discovery."""
    content = await read_csv_upload(file)

    try:
        df = csv_parser.parse_bytes(content, file.filename)
    except Exception as e:
        logger.error(f"Could not parse catalog {file.filename}: {e}")
        raise HTTPException(status_code=400, detail=f"Could not parse CSV: {str(e)}")

    if df.is_empty():
        raise HTTPException(status_code=400, detail="Catalog file has no rows")

    session_id = csv_parser.generate_session_id(file.filename)
    csv_parser.save_dataframe(df, session_id)
    session_store.create(session_id, {
        "kind": SessionKind.CATALOG.value,
        "source": file.filename,
        "row_count": len(df),
        "column_count": len(df.columns),
        "columns": df.columns,
        "status": "ready",
    })
    logger.info(f"Created catalog session {session_id} with {len(df)} products")

    return CatalogResponse(
        session_id=session_id,
        filename=file.filename,
        product_count=len(df),
        columns=df.columns,
        message=f"Successfully uploaded {file.filename}",
    )


@router.post("/discovery/{session_id}/run", response_model=DiscoveryRunResponse)
async def run_discovery(session_id: str, request: DiscoveryRunRequest) -> DiscoveryRunResponse:
    """Run one discovery pass over the session's catalog."""
    session = require_session(session_id, SessionKind.CATALOG)
    products = _catalog_products(session_id)
    engine = _engine(session_id)

    start = time.perf_counter()
    with session["lock"]:
        engine.options = DiscoveryOptions(**request.options())
        if request.pass_number is not None:
            engine.set_pass(request.pass_number)
        try:
            patterns = engine.discover_patterns(products)
        except Exception as e:
            logger.exception("Discovery pass failed")
            raise HTTPException(status_code=500, detail=f"Error discovering patterns: {str(e)}")
        progress = engine.get_progress()

    return DiscoveryRunResponse(
        session_id=session_id,
        pass_number=engine.current_pass,
        pattern_count=len(patterns),
        patterns=patterns,
        progress=progress,
        processing_time_ms=(time.perf_counter() - start) * 1000,
    )


@router.get("/discovery/{session_id}/survey", response_model=SurveyResponse)
async def get_survey(session_id: str) -> SurveyResponse:
    """Patterns of the current pass, ready for review."""
    require_session(session_id, SessionKind.CATALOG)
    engine = _engine(session_id)

    return SurveyResponse(
        session_id=session_id,
        pass_number=engine.current_pass,
        patterns=engine.get_patterns_for_survey(),
    )


@router.get("/discovery/{session_id}/report")
async def get_catalog_report(session_id: str) -> dict:
    """Full-catalog pattern report."""
    products = _catalog_products(session_id)

    cache_key = metrics_cache.make_session_key(session_id, "catalog-report")
    report = metrics_cache.get(cache_key)
    if report is None:
        try:
            report = analyze_full_catalog(products)
        except Exception as e:
            logger.exception("Catalog report failed")
            raise HTTPException(status_code=500, detail=f"Error building report: {str(e)}")
        metrics_cache.set(cache_key, report)
    return report


@router.post("/discovery/{session_id}/questions")
async def get_questions(session_id: str, request: QuestionsRequest) -> dict:
    """Layer-2 questionnaire for one survey pattern."""
    products = _catalog_products(session_id)
    engine = _engine(session_id)

    pattern = request.pattern
    if request.pattern_id is not None:
        pattern = next((p for p in engine.get_patterns_for_survey() if p["id"] == request.pattern_id), None)
        if pattern is None:
            raise HTTPException(status_code=404, detail=f"Pattern {request.pattern_id} not found")

    combinations = None
    if pattern is not None and request.include_combinations:
        combinations = find_combinations(pattern.get("word", ""), products)

    try:
        return _generator(session_id).generate_layer2_questions(pattern, combinations)
    except PatternRequiredError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/discovery/{session_id}/responses")
async def submit_responses(session_id: str, request: ResponsesRequest) -> dict:
    """Fold questionnaire answers into a classification and learn custom answers."""
    session = require_session(session_id, SessionKind.CATALOG)
    with session["lock"]:
        return _generator(session_id).process_layer2_response(request.pattern_id, request.responses)


@router.get("/discovery/{session_id}/learning", response_model=LearningResponse)
async def export_learning(session_id: str) -> LearningResponse:
    require_session(session_id, SessionKind.CATALOG)
    return LearningResponse(**_generator(session_id).export_learning())


@router.put("/discovery/{session_id}/learning", response_model=LearningResponse)
async def import_learning(session_id: str, request: LearningImport) -> LearningResponse:
    """Replace the session's learned classifications."""
    session = require_session(session_id, SessionKind.CATALOG)
    generator = _generator(session_id)
    with session["lock"]:
        generator.import_learning(request.model_dump())
    return LearningResponse(**generator.export_learning())
