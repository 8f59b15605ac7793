"""
Session and upload helpers shared by the API routes.
"""

from typing import Any, Optional

from fastapi import HTTPException, UploadFile

from api.schemas.responses import SessionKind
from config import get_settings
from core.cache import session_store
from core.csv_parser import csv_parser


async def read_csv_upload(file: UploadFile) -> bytes:
    """Read an uploaded CSV, enforcing type and size limits."""
    settings = get_settings()

    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(
            status_code=400,
            detail="Only CSV files are supported"
        )

    content = await file.read()

    file_size_mb = len(content) / (1024 * 1024)
    if file_size_mb > settings.max_file_size_mb:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {settings.max_file_size_mb}MB"
        )
    return content


def require_session(session_id: str, kind: Optional[SessionKind] = None) -> dict[str, Any]:
    """Session metadata, or 404 when missing or of another kind."""
    session = session_store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    if kind is not None and session.get("kind") != kind.value:
        raise HTTPException(status_code=404, detail=f"Session {session_id} is not a {kind.value} session")
    return session


def session_rows(session_id: str) -> list[dict[str, Any]]:
    """
    Row mappings of a session dataset, parsed once per session.

    Raises:
        HTTPException: 404 when the session or its data file is missing
    """
    require_session(session_id)
    try:
        rows = session_store.get_object(session_id, "rows", lambda: csv_parser.load_rows(session_id))
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Session data not found")
    if rows is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return rows
