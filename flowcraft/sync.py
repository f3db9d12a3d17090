"""
Dual authoring: keeps the text buffer and the host's workflow graph in step.

Sync states:
- synced: the buffer equals the last serialized or applied text
- pending: the buffer was edited and has no blocking findings
- error: the buffer has blocking findings, or the last apply failed

Apply (text -> graph) is only allowed from `pending`. Regenerate
(graph -> text) is always allowed and resets the edit history.
"""

import logging
import re
from typing import Callable, Dict, List, Optional

import config
from .history import EditHistory
from .parser import parse
from .schemas import (
    AuthoringMode,
    Connection,
    SessionStatus,
    SkippedLine,
    SyncState,
    ValidationIssue,
    Workflow,
    WorkflowMetadata,
    WorkflowNode,
)
from .serializer import serialize_workflow
from .validator import blocking, validate

logger = logging.getLogger(__name__)


class DualAuthoringSession:
    def __init__(
        self,
        workflow: Workflow,
        mode: AuthoringMode = AuthoringMode.VISUAL,
        history_limit: Optional[int] = None,
        on_nodes_change: Optional[Callable[[List[WorkflowNode]], None]] = None,
        on_connections_change: Optional[Callable[[List[Connection]], None]] = None,
        on_metadata_change: Optional[Callable[[WorkflowMetadata], None]] = None,
    ):
        self.workflow = workflow
        self.history = EditHistory(history_limit)
        self.on_nodes_change = on_nodes_change
        self.on_connections_change = on_connections_change
        self.on_metadata_change = on_metadata_change

        self.mode = AuthoringMode.VISUAL
        self.text = ""
        self.last_synced_content = ""
        self.issues: List[ValidationIssue] = []
        self.skipped: List[SkippedLine] = []
        self.state = SyncState.SYNCED
        self.set_mode(mode)

    # --- Mode / lifecycle ---

    @property
    def is_authoring(self) -> bool:
        return self.mode != AuthoringMode.VISUAL

    def set_mode(self, mode: AuthoringMode):
        mode = AuthoringMode(mode)
        if mode == AuthoringMode.VISUAL:
            self.mode = mode
            self.leave()
        else:
            self.mode = mode
            self.enter()

    def enter(self):
        """Create the buffer from the current graph."""
        self.regenerate()

    def leave(self):
        """Discard the buffer and everything derived from it."""
        self.text = ""
        self.last_synced_content = ""
        self.issues = []
        self.skipped = []
        self.state = SyncState.SYNCED
        self.history.clear()

    def _require_authoring(self):
        if not self.is_authoring:
            raise ValueError("Text editing requires code or split mode")

    # --- State ---

    @property
    def is_dirty(self) -> bool:
        return self.text != self.last_synced_content

    @property
    def sync_state(self) -> SyncState:
        return self.state

    def _recompute(self):
        self.issues = validate(self.text)
        if not self.is_dirty:
            self.state = SyncState.SYNCED
        elif blocking(self.issues):
            self.state = SyncState.ERROR
        else:
            self.state = SyncState.PENDING

    def _set_text(self, text: str):
        self.text = text
        self._recompute()

    # --- Editing ---

    def edit(self, text: str):
        self._require_authoring()
        self.history.record(self.text)
        self._set_text(text)

    def undo(self) -> Optional[str]:
        self._require_authoring()
        previous = self.history.undo(self.text)
        if previous is not None:
            self._set_text(previous)
        return previous

    def redo(self) -> Optional[str]:
        self._require_authoring()
        following = self.history.redo(self.text)
        if following is not None:
            self._set_text(following)
        return following

    # --- Sync ---

    def apply(self) -> bool:
        """Parse the buffer into the host graph. Returns False when refused."""
        self._require_authoring()
        if self.state == SyncState.SYNCED:
            return False

        blockers = blocking(self.issues)
        if blockers or self.state != SyncState.PENDING:
            self.state = SyncState.ERROR
            logger.warning(f"Apply refused: {len(blockers)} blocking issues")
            return False

        result = parse(self.text)
        if result.errors:
            self.issues = self.issues + result.errors
            self.state = SyncState.ERROR
            logger.warning(f"Apply failed: parser reported {len(result.errors)} errors")
            return False

        metadata = result.metadata.merge_into(self.workflow.metadata)
        metadata_changed = bool(result.metadata.model_dump(exclude_none=True))
        self.workflow = Workflow(nodes=result.nodes, connections=result.connections, metadata=metadata)
        self.skipped = result.skipped

        if self.on_nodes_change:
            self.on_nodes_change(self.workflow.nodes)
        if self.on_connections_change:
            self.on_connections_change(self.workflow.connections)
        if self.on_metadata_change and metadata_changed:
            self.on_metadata_change(self.workflow.metadata)

        self.last_synced_content = self.text
        self.state = SyncState.SYNCED
        logger.info(
            f"Applied text: {len(result.nodes)} nodes, {len(result.connections)} connections, "
            f"{len(result.skipped)} skipped lines"
        )
        return True

    def regenerate(self):
        """Re-derive the buffer from the graph, discarding unsynced edits."""
        self.text = serialize_workflow(self.workflow)
        self.last_synced_content = self.text
        self.issues = validate(self.text)
        self.skipped = []
        self.state = SyncState.SYNCED
        self.history.clear()
        logger.info(f"Regenerated text for '{self.workflow.metadata.name}'")

    def update_graph(self, workflow: Workflow):
        """Take a new snapshot from the canvas. The buffer is left alone."""
        self.workflow = workflow

    # --- Import / export ---

    def import_text(self, text: str):
        self.edit(text)

    def export_text(self) -> str:
        return self.text

    def export_filename(self) -> str:
        name = re.sub(r"\s+", "-", self.workflow.metadata.name).lower()
        return f"{name}{config.FLOW_FILE_SUFFIX}"

    # --- Reporting ---

    def stats(self) -> Dict[str, int]:
        return {
            "lines": len(self.text.split("\n")),
            "chars": len(self.text),
            "nodes": len(self.workflow.nodes),
            "connections": len(self.workflow.connections),
        }

    def status(self) -> SessionStatus:
        return SessionStatus(
            mode=self.mode,
            text=self.text,
            state=self.state,
            dirty=self.is_dirty,
            issues=self.issues,
            skipped=self.skipped,
            can_undo=self.history.can_undo,
            can_redo=self.history.can_redo,
            stats=self.stats(),
        )
