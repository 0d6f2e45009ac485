"""Persisted sign-in state for the client."""
import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError

from gatepass.core.logging_config import get_logger
from gatepass.schemas.auth import SessionContext

logger = get_logger(__name__)

DEFAULT_SESSION_PATH = Path.home() / ".gatepass" / "session.json"


class StoredSession(BaseModel):
    access_token: str
    context: SessionContext


class SessionStore:
    """
    Holds the bearer token and acting role for one signed-in user.

    Loaded once at start-up, replaced on role switch and cleared on sign-out.
    Nothing else in the client keeps session state.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else DEFAULT_SESSION_PATH
        self.current: Optional[StoredSession] = None

    @property
    def token(self) -> Optional[str]:
        return self.current.access_token if self.current else None

    @property
    def context(self) -> Optional[SessionContext]:
        return self.current.context if self.current else None

    def load(self) -> Optional[StoredSession]:
        """Read the saved session, discarding it if unreadable."""
        if not self.path.exists():
            self.current = None
            return None
        try:
            self.current = StoredSession.model_validate_json(self.path.read_text())
        except (OSError, ValidationError, json.JSONDecodeError) as e:
            logger.warning("session_load_failed", path=str(self.path), error=str(e))
            self.current = None
        return self.current

    def save(self, access_token: str, context: SessionContext) -> StoredSession:
        self.current = StoredSession(access_token=access_token, context=context)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(self.current.model_dump_json())
        return self.current

    def clear(self) -> None:
        """Sign out: forget the token and remove the saved file."""
        self.current = None
        self.path.unlink(missing_ok=True)
