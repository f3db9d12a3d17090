import threading
import logging
from contextlib import contextmanager
from typing import Dict, Optional

from .schemas import AuthoringMode, Workflow
from .sync import DualAuthoringSession

logger = logging.getLogger(__name__)

class SessionManager:
    """Open authoring sessions, one per document, each behind its own lock.

    Sessions live in memory only; closing one discards its text buffer.
    """

    def __init__(self, history_limit: Optional[int] = None):
        self.history_limit = history_limit
        self.sessions: Dict[str, DualAuthoringSession] = {}
        self.locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def open(self, doc_id: str, workflow: Workflow, mode: AuthoringMode = AuthoringMode.SPLIT) -> DualAuthoringSession:
        with self._registry_lock:
            if doc_id in self.sessions:
                raise ValueError(f"Document {doc_id} is already open")
            session = DualAuthoringSession(workflow, mode=mode, history_limit=self.history_limit)
            self.sessions[doc_id] = session
            self.locks[doc_id] = threading.Lock()
        logger.info(f"Opened document: {doc_id}")
        return session

    def get(self, doc_id: str) -> DualAuthoringSession:
        session = self.sessions.get(doc_id)
        if session is None:
            raise ValueError(f"Document {doc_id} is not open")
        return session

    @contextmanager
    def locked(self, doc_id: str):
        """Run a block against one document with no other call interleaving."""
        with self._registry_lock:
            session = self.get(doc_id)
            lock = self.locks[doc_id]
        with lock:
            # close() may have won the document lock while we waited
            if self.sessions.get(doc_id) is not session:
                raise ValueError(f"Document {doc_id} is not open")
            yield session

    def list_sessions(self):
        return list(self.sessions.keys())

    def close(self, doc_id: str):
        with self._registry_lock:
            if doc_id not in self.sessions:
                raise ValueError(f"Document {doc_id} is not open")
            with self.locks[doc_id]:
                self.sessions[doc_id].leave()
                del self.sessions[doc_id]
            del self.locks[doc_id]
        logger.info(f"Closed document: {doc_id}")
