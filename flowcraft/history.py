from collections import deque
from typing import Optional

import config


class EditHistory:
    """Bounded undo/redo stacks of text-buffer snapshots."""

    def __init__(self, limit: Optional[int] = None):
        self.limit = limit if limit is not None else config.HISTORY_LIMIT
        # Oldest snapshot is dropped once the undo side is full
        self._undo = deque(maxlen=self.limit)
        self._redo = deque()

    def record(self, prior_text: str):
        self._undo.append(prior_text)
        self._redo.clear()

    def undo(self, current_text: str) -> Optional[str]:
        if not self._undo:
            return None
        self._redo.append(current_text)
        return self._undo.pop()

    def redo(self, current_text: str) -> Optional[str]:
        if not self._redo:
            return None
        self._undo.append(current_text)
        return self._redo.pop()

    def clear(self):
        self._undo.clear()
        self._redo.clear()

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def __len__(self):
        return len(self._undo)
