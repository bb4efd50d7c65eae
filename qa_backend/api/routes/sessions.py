# qa_backend/api/routes/sessions.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from qa_backend.api.routes.utils import get_question_service
from qa_backend.core.exceptions import PersistenceFailure, RoomNotFound
from qa_backend.models.models import CreateSessionRequest
from qa_backend.services.auth_service import require_admin
from qa_backend.services.question_service import QuestionService

router = APIRouter(prefix="/api/sessions", tags=["sessions"])

# ============================================================================
# SESSION ENDPOINTS
# ============================================================================

@router.post("", status_code=201, dependencies=[Depends(require_admin("create_session"))])
async def create_session(
    request: CreateSessionRequest,
    service: QuestionService = Depends(get_question_service),
):
    """
    Create a new session (room) with a fresh shareable code. Admin only.

    Returns:
        dict: The stored session: _id, name, code, totalConnections, createdAt

    Raises:
        HTTPException: 400 if the name is blank, 500 on store failure
    """
    if not request.name.strip():
        raise HTTPException(status_code=400, detail="Session name required")
    try:
        room = await service.create_session(request.name)
    except PersistenceFailure:
        raise HTTPException(status_code=500, detail="Could not create session")
    return room.to_wire()


@router.get("", dependencies=[Depends(require_admin("list_sessions"))])
async def list_sessions(service: QuestionService = Depends(get_question_service)) -> List[dict]:
    """List every session, newest first. Admin only."""
    try:
        rooms = await service.list_sessions()
    except PersistenceFailure:
        raise HTTPException(status_code=500, detail="Could not list sessions")
    return [room.to_wire() for room in rooms]


@router.get("/{code}")
async def get_session(code: str, service: QuestionService = Depends(get_question_service)):
    """
    Session details and its full question history (oldest first).

    Raises:
        HTTPException: 404 if no session has this code
    """
    try:
        room, questions = await service.get_session(code)
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Session not found")
    except PersistenceFailure:
        raise HTTPException(status_code=500, detail="Could not load session")
    return {"session": room.to_wire(), "questions": [q.to_wire() for q in questions]}
