# qa_backend/core/config.py
import os

from dotenv import load_dotenv


def _csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """
    Setup environment variables.
        - MONGO_URI / MONGO_DB the MongoDB deployment holding sessions and questions
        - ADMIN_USERNAME / ADMIN_PASSWORD credentials for admin-only actions
        - ANONYMOUS_NAME the sender name used when a question is submitted without one
        - SEND_TIMEOUT_SECONDS upper bound for a single WebSocket delivery in a broadcast
    """

    # Load environment variables from the .env file
    load_dotenv()

    MONGO_URI: str = os.getenv("MONGO_URI", "")
    MONGO_DB: str = os.getenv("MONGO_DB", "live_qa")

    ADMIN_USERNAME: str = os.getenv("ADMIN_USERNAME", "")
    ADMIN_PASSWORD: str = os.getenv("ADMIN_PASSWORD", "")

    ANONYMOUS_NAME: str = os.getenv("ANONYMOUS_NAME", "Anonymous")
    ROOM_CODE_LENGTH: int = int(os.getenv("ROOM_CODE_LENGTH", "6"))
    SEND_TIMEOUT_SECONDS: float = float(os.getenv("SEND_TIMEOUT_SECONDS", "5"))

    CORS_ORIGINS: list[str] = _csv(os.getenv("CORS_ORIGINS", "*"))

    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))


settings = Settings()
