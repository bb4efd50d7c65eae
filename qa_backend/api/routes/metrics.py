# qa_backend/api/routes/metrics.py
from datetime import datetime, timezone

from fastapi import APIRouter

from qa_backend.core import state

router = APIRouter()

@router.get("/metrics")
async def get_metrics():
    """
    Process-local usage figures.

    Counters reset on restart. For the durable join history see
    ``totalConnections`` on each session.
    """
    uptime_seconds = (datetime.now(timezone.utc) - state.app_start_time).total_seconds()
    submitted = state.question_service.submitted_count if state.question_service else 0
    rooms = await state.room_registry.active_rooms()

    return {
        "uptime_hours": round(uptime_seconds / 3600, 2) if uptime_seconds > 0 else 0,
        "questions_submitted": submitted,
        "questions_per_hour": round(submitted / (uptime_seconds / 3600), 2) if uptime_seconds > 0 else 0,
        "concurrent_connections": sum(rooms.values()),
        "active_rooms": rooms,
    }
