# qa_backend/core/state.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from qa_backend.core.config import settings
from qa_backend.services.auth_service import AdminAuthorizer, BasicAdminAuthorizer
from qa_backend.services.dispatcher import BroadcastDispatcher, PresenceCounter
from qa_backend.services.message_store import MessageStore
from qa_backend.services.question_service import QuestionService
from qa_backend.services.room_registry import RoomRegistry

# Global singletons for app state
room_registry = RoomRegistry()
dispatcher = BroadcastDispatcher(room_registry, send_timeout=settings.SEND_TIMEOUT_SECONDS)
presence = PresenceCounter(room_registry, dispatcher)
authorizer: AdminAuthorizer = BasicAdminAuthorizer(settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD)

# Set on startup, once the store is connected
store: Optional[MessageStore] = None
question_service: Optional[QuestionService] = None

# Metrics
app_start_time: datetime = datetime.now(timezone.utc)


def bind_store(new_store: MessageStore) -> None:
    global store, question_service
    store = new_store
    room_registry.bind_store(new_store)
    question_service = QuestionService(new_store, dispatcher, anonymous_name=settings.ANONYMOUS_NAME)
