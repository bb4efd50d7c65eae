# qa_backend/api/routes/utils.py

from __future__ import annotations

from fastapi import HTTPException, Request

from qa_backend.core import state
from qa_backend.services.question_service import QuestionService


def get_question_service() -> QuestionService:
    """Dependency returning the service bound at startup (503 before that)."""
    if state.question_service is None:
        raise HTTPException(status_code=503, detail="Store not ready")
    return state.question_service


def client_address(request: Request) -> str | None:
    """Submitter address as seen by the server, stored for abuse tracing."""
    return request.client.host if request.client else None
