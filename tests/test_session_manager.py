import threading

import pytest

from flowcraft.schemas import Workflow
from flowcraft.session_manager import SessionManager


class CloseWhileWaitingLock:
    """Stands in for a document lock that close() wins before the caller gets it."""

    def __init__(self, manager, doc_id):
        self.manager = manager
        self.doc_id = doc_id
        self.inner = threading.Lock()

    def __enter__(self):
        # close() runs to completion with the real lock, then this caller gets it
        self.manager.locks[self.doc_id] = self.inner
        self.manager.close(self.doc_id)
        self.inner.acquire()
        return self

    def __exit__(self, *exc):
        self.inner.release()
        return False


@pytest.fixture
def manager():
    manager = SessionManager()
    manager.open("doc", Workflow())
    return manager


def test_locked_yields_open_session(manager):
    with manager.locked("doc") as session:
        assert session is manager.sessions["doc"]


def test_locked_unknown_document(manager):
    with pytest.raises(ValueError):
        with manager.locked("missing"):
            pass


def test_waiter_sees_document_closed_under_it(manager):
    manager.locks["doc"] = CloseWhileWaitingLock(manager, "doc")

    with pytest.raises(ValueError, match="not open"):
        with manager.locked("doc"):
            pytest.fail("a closed session must not be handed out")

    assert "doc" not in manager.sessions
    assert "doc" not in manager.locks


def test_close_waits_for_running_operation(manager):
    entered = threading.Event()
    release = threading.Event()

    def hold_document():
        with manager.locked("doc"):
            entered.set()
            release.wait(5)

    holder = threading.Thread(target=hold_document)
    holder.start()
    assert entered.wait(5)

    closer = threading.Thread(target=manager.close, args=("doc",))
    closer.start()
    closer.join(0.2)
    assert closer.is_alive()
    assert "doc" in manager.sessions

    release.set()
    holder.join(5)
    closer.join(5)
    assert not closer.is_alive()
    assert "doc" not in manager.sessions

    with pytest.raises(ValueError):
        with manager.locked("doc"):
            pass
