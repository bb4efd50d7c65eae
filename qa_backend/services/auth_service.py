# qa_backend/services/auth_service.py
"""
Admin authorization.

The routes only ask one question: may this caller perform admin action X?
``AdminAuthorizer`` answers it. The shipped implementation checks HTTP Basic
credentials against ADMIN_USERNAME / ADMIN_PASSWORD; swap in another
authorizer on ``state.authorizer`` to change the mechanism.
"""

from __future__ import annotations

import secrets
from abc import ABC, abstractmethod

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from qa_backend.core.logging import get_logger

logger = get_logger(__name__)

security = HTTPBasic(realm="Live Q&A admin")


class AdminAuthorizer(ABC):
    @abstractmethod
    def is_allowed(self, credentials: HTTPBasicCredentials, action: str) -> bool:
        """Return True if ``credentials`` may perform ``action``."""


class BasicAdminAuthorizer(AdminAuthorizer):
    """Single admin account. With no credentials configured, everything is denied."""

    def __init__(self, username: str, password: str) -> None:
        self.username = username
        self.password = password

    def is_allowed(self, credentials: HTTPBasicCredentials, action: str) -> bool:
        if not self.username or not self.password:
            logger.warning("Admin credentials not configured; denying %s", action)
            return False
        user_ok = secrets.compare_digest(credentials.username.encode("utf-8"), self.username.encode("utf-8"))
        pass_ok = secrets.compare_digest(credentials.password.encode("utf-8"), self.password.encode("utf-8"))
        return user_ok and pass_ok


def require_admin(action: str):
    """FastAPI dependency factory gating a route on ``action``."""

    async def dependency(credentials: HTTPBasicCredentials = Depends(security)) -> str:
        from qa_backend.core import state

        if not state.authorizer.is_allowed(credentials, action):
            logger.warning("Denied admin action %s for user %r", action, credentials.username)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not authorized",
                headers={"WWW-Authenticate": "Basic"},
            )
        return credentials.username

    return dependency
