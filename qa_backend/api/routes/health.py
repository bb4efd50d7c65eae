# qa_backend/api/routes/health.py

from fastapi import APIRouter

from qa_backend.core import state

router = APIRouter()

@router.get("/health")
async def health():
    """
    Health check endpoint.

    Returns current status, live connection count and number of rooms with
    at least one member.
    """
    return {
        "status": "healthy" if state.store is not None else "starting",
        "connections": await state.room_registry.connection_count(),
        "active_rooms": len(await state.room_registry.active_rooms()),
    }
