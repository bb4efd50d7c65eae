# qa_backend/api/routes/root.py

from fastapi import APIRouter

router = APIRouter()


@router.get("/")
async def root():
    """
    Root endpoint - API information.
    """
    return {
        "message": "Live Q&A rooms",
        "version": "1.0",
        "endpoints": {
            "websocket": "/ws",
            "sessions": "/api/sessions",
            "ask": "/api/ask/{code}",
            "questions": "/api/questions",
            "health": "/health",
            "metrics": "/metrics",
        },
    }
