# qa_backend/api/routes/questions.py

from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from qa_backend.api.routes.utils import client_address, get_question_service
from qa_backend.core.exceptions import (
    InvalidIdentifier,
    InvalidRange,
    PersistenceFailure,
    QuestionNotFound,
    RoomNotFound,
)
from qa_backend.models.models import AskQuestionRequest
from qa_backend.services.auth_service import require_admin
from qa_backend.services.question_service import QuestionService

router = APIRouter(prefix="/api", tags=["questions"])

# ============================================================================
# QUESTION ENDPOINTS
# ============================================================================

@router.post("/ask/{code}")
async def ask_question(
    code: str,
    body: AskQuestionRequest,
    request: Request,
    service: QuestionService = Depends(get_question_service),
):
    """
    Submit a question to a session.

    Flow:
        1. Resolve the session by code (404 if unknown, nothing stored)
        2. Persist the question with the caller's address
        3. Broadcast "new_question" to everyone in the room

    Raises:
        HTTPException: 404 if session not found, 500 if the write fails
    """
    try:
        await service.submit(code, body.question, body.name, client_address(request))
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Session not found")
    except PersistenceFailure:
        raise HTTPException(status_code=500, detail="Could not save question")
    return {"message": "Question received"}


@router.delete("/questions/{question_id}", dependencies=[Depends(require_admin("delete_question"))])
async def delete_question(question_id: str, service: QuestionService = Depends(get_question_service)):
    """
    Delete a question and broadcast "question_deleted" to its room. Admin only.

    Raises:
        HTTPException: 400 on a malformed id, 404 if no such question
    """
    try:
        await service.delete(question_id)
    except InvalidIdentifier:
        raise HTTPException(status_code=400, detail="Invalid question id")
    except QuestionNotFound:
        raise HTTPException(status_code=404, detail="Question not found")
    except PersistenceFailure:
        raise HTTPException(status_code=500, detail="Could not delete question")
    return {"message": "Question deleted"}


@router.get("/questions", dependencies=[Depends(require_admin("export_questions"))])
async def questions_between(
    start: datetime,
    end: datetime,
    service: QuestionService = Depends(get_question_service),
) -> List[dict]:
    """All questions created in [start, end], oldest first. Admin only."""
    try:
        questions = await service.questions_between(start, end)
    except InvalidRange as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PersistenceFailure:
        raise HTTPException(status_code=500, detail="Could not load questions")
    return [q.to_wire() for q in questions]
