"""
Text -> graph parser for the flow DSL.

A single forward pass over the lines, written as a fold: `step` takes the
current `ParserState` and one numbered line and returns the next state.
Three sections are recognized:
- root: workflow metadata (name, version, description, tags)
- nodes: `- id:` entries with their fields and a `data:` block
- connections: `- from: "a" -> to: "b"` entries

The parser never raises. Lines it cannot interpret are left out of the result
and listed in `ParseResult.skipped` so the caller can surface the loss.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from functools import reduce
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from .schemas import (
    NODE_TYPES,
    Connection,
    ParseResult,
    PartialMetadata,
    Position,
    SkippedLine,
    WorkflowNode,
)
from .serializer import BLOCK_INDENT, FIELD_INDENT

logger = logging.getLogger(__name__)

ROOT, NODES, CONNECTIONS = "root", "nodes", "connections"

NAME_RE = re.compile(r'^name:\s*"(.*)"$')
VERSION_RE = re.compile(r'^version:\s*"(.*)"$')
DESCRIPTION_RE = re.compile(r'^description:\s*"(.*)"$')
TAGS_RE = re.compile(r"^tags:\s*\[(.*)\]$")

NODE_ID_RE = re.compile(r'^- id:\s*"(.*)"$')
LABEL_RE = re.compile(r'^label:\s*"(.*)"$')
POSITION_RE = re.compile(r"^position:\s*\{\s*x:\s*(-?\d+)\s*,\s*y:\s*(-?\d+)\s*\}$")
# Any key without a colon; `#` and `- id:` lines are claimed before data entries
DATA_ENTRY_RE = re.compile(r"^([^:\s][^:]*):\s*(.*)$")

CONNECTION_RE = re.compile(r'^- from:\s*"(.*)"\s*->\s*to:\s*"(.*)"$')
NUMBER_RE = re.compile(r"-?\d+(\.\d+)?([eE][+-]?\d+)?")


def parse_value(token: str) -> Any:
    """Interpret a data value token. Block scalars (`|`) are handled by the caller."""
    # 1. Quoted string
    if len(token) >= 2 and token.startswith('"') and token.endswith('"'):
        return token[1:-1]
    # 2. Bracketed list, raw string when it isn't valid JSON
    if token.startswith("[") and token.endswith("]"):
        try:
            return json.loads(token)
        except ValueError:
            return token
    # 3. Single-line JSON object
    if token.startswith("{") and token.endswith("}"):
        try:
            return json.loads(token)
        except ValueError:
            return token
    # 4. Number
    if NUMBER_RE.fullmatch(token):
        if token.lstrip("-").isdigit():
            return int(token)
        return float(token)
    # 5. Boolean
    if token in ("true", "false"):
        return token == "true"
    # 6. Anything else
    return token


def _parse_tags(inner: str) -> List[str]:
    if not inner.strip():
        return []
    try:
        tags = json.loads(f"[{inner}]")
        if all(isinstance(t, str) for t in tags):
            return tags
    except ValueError:
        pass
    return [t.strip().replace('"', "") for t in inner.split(",")]


@dataclass
class NodeAccumulator:
    line: int
    text: str
    id: Optional[str] = None
    type: Optional[str] = None
    label: str = ""
    position: Position = field(default_factory=Position)
    in_data: bool = False


@dataclass
class ParserState:
    section: str = ROOT
    current_node: Optional[NodeAccumulator] = None
    current_data: Dict[str, Any] = field(default_factory=dict)
    multiline_key: Optional[str] = None
    multiline_value: List[str] = field(default_factory=list)
    nodes: List[WorkflowNode] = field(default_factory=list)
    connections: List[Connection] = field(default_factory=list)
    metadata: PartialMetadata = field(default_factory=PartialMetadata)
    skipped: List[SkippedLine] = field(default_factory=list)

    def skip(self, line_no: int, line: str, reason: str):
        self.skipped.append(SkippedLine(line=line_no, text=line, reason=reason))

    def close_multiline(self):
        if self.multiline_key is not None:
            self.current_data[self.multiline_key] = "\n".join(self.multiline_value)
        self.multiline_key = None
        self.multiline_value = []

    def flush_node(self):
        """Commit the open node, or drop it when it has no id or no valid type."""
        self.close_multiline()
        acc = self.current_node
        self.current_node = None
        data, self.current_data = self.current_data, {}
        if acc is None:
            return
        if acc.id is None:
            self.skip(acc.line, acc.text, "node has no id; dropped")
            return
        if acc.type not in NODE_TYPES:
            self.skip(acc.line, acc.text, f"node type {acc.type!r} is missing or unknown; dropped")
            return
        try:
            node = WorkflowNode(
                id=acc.id,
                type=acc.type,
                label=acc.label,
                position=acc.position,
                data=data,
                variables=[],
            )
        except ValidationError as e:
            self.skip(acc.line, acc.text, f"invalid node: {e.error_count()} validation errors; dropped")
            return
        self.nodes.append(node)

    def finish(self) -> ParseResult:
        self.flush_node()
        if self.skipped:
            logger.debug(f"Parser skipped {len(self.skipped)} lines")
        return ParseResult(
            nodes=self.nodes,
            connections=self.connections,
            metadata=self.metadata,
            errors=[],
            skipped=self.skipped,
        )


def _step_root(state: ParserState, line_no: int, line: str, trimmed: str):
    match = NAME_RE.match(trimmed)
    if match:
        state.metadata.name = match.group(1)
        return
    match = VERSION_RE.match(trimmed)
    if match:
        state.metadata.version = match.group(1)
        return
    match = DESCRIPTION_RE.match(trimmed)
    if match:
        state.metadata.description = match.group(1)
        return
    match = TAGS_RE.match(trimmed)
    if match:
        state.metadata.tags = _parse_tags(match.group(1))
        return
    state.skip(line_no, line, "unrecognized metadata line")


def _add_data_entry(state: ParserState, trimmed: str) -> bool:
    match = DATA_ENTRY_RE.match(trimmed)
    if not match:
        return False
    key, value = match.group(1), match.group(2).strip()
    if value == "|":
        state.multiline_key = key
        state.multiline_value = []
    else:
        state.current_data[key] = parse_value(value)
    return True


def _step_nodes(state: ParserState, line_no: int, line: str, trimmed: str):
    if trimmed.startswith("- id:"):
        state.flush_node()
        match = NODE_ID_RE.match(trimmed)
        state.current_node = NodeAccumulator(line=line_no, text=line, id=match.group(1) if match else None)
        return

    node = state.current_node
    if node is None:
        state.skip(line_no, line, "line outside of a node")
        return

    indent = len(line) - len(line.lstrip(" "))
    # Deeper than the node fields inside a data block: always a data entry
    if node.in_data and indent > len(FIELD_INDENT):
        if not _add_data_entry(state, trimmed):
            state.skip(line_no, line, "unrecognized data entry")
        return

    if trimmed.startswith("type:"):
        node.type = trimmed[len("type:"):].strip()
    elif trimmed.startswith("label:"):
        match = LABEL_RE.match(trimmed)
        if match:
            node.label = match.group(1)
        else:
            state.skip(line_no, line, "malformed label")
    elif trimmed.startswith("position:"):
        match = POSITION_RE.match(trimmed)
        if match:
            node.position = Position(x=int(match.group(1)), y=int(match.group(2)))
        else:
            state.skip(line_no, line, "malformed position")
    elif trimmed == "data:":
        node.in_data = True
    elif not (node.in_data and _add_data_entry(state, trimmed)):
        state.skip(line_no, line, "unrecognized node field")


def _step_connections(state: ParserState, line_no: int, line: str, trimmed: str):
    match = CONNECTION_RE.match(trimmed)
    if match:
        state.connections.append(
            Connection(
                id=f"c{len(state.connections) + 1}",
                source=match.group(1),
                target=match.group(2),
            )
        )
    elif trimmed.startswith("ports:"):
        # Port overrides are not read back; connections keep output -> input
        state.skip(line_no, line, "port override ignored")
    else:
        state.skip(line_no, line, "unrecognized connection line")


def step(state: ParserState, numbered_line: Tuple[int, str]) -> ParserState:
    line_no, line = numbered_line
    line = line.rstrip("\r")

    # Block scalar continuation is decided before anything else looks at the line
    if state.multiline_key is not None:
        if line.startswith(BLOCK_INDENT):
            state.multiline_value.append(line[len(BLOCK_INDENT):])
            return state
        state.close_multiline()

    trimmed = line.strip()
    if not trimmed or trimmed.startswith("#"):
        return state

    if trimmed == "nodes:":
        state.flush_node()
        state.section = NODES
        return state
    if trimmed == "connections:":
        state.flush_node()
        state.section = CONNECTIONS
        return state

    if state.section == ROOT:
        _step_root(state, line_no, line, trimmed)
    elif state.section == NODES:
        _step_nodes(state, line_no, line, trimmed)
    else:
        _step_connections(state, line_no, line, trimmed)
    return state


def parse(text: str) -> ParseResult:
    state = reduce(step, enumerate(text.split("\n"), start=1), ParserState())
    return state.finish()
