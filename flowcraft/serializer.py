import json
import re
from typing import List, Any

from .schemas import Workflow, WorkflowNode, Connection, WorkflowMetadata, ValueKind, value_kind

NODE_INDENT = "  "
FIELD_INDENT = "    "
DATA_INDENT = "      "
# Block scalar continuation lines; the parser detects them by this exact prefix
BLOCK_INDENT = "        "

LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


def _quoted(text: str) -> str:
    # Ids, labels and metadata are single-line fields: line breaks become spaces
    return f'"{LINE_BREAK_RE.sub(" ", text)}"'


def _coord(value: float) -> int:
    return int(round(value))


def _list_item(item: Any) -> str:
    return json.dumps(item if isinstance(item, str) else str(item), ensure_ascii=False)


def format_value(key: str, value: Any) -> List[str]:
    """Render one data entry as DSL lines (one line, or several for a block scalar)."""
    kind = value_kind(value)

    if kind is ValueKind.MULTILINE:
        lines = [f"{DATA_INDENT}{key}: |"]
        lines.extend(f"{BLOCK_INDENT}{part}" for part in value.split("\n"))
        return lines
    if kind is ValueKind.STRING:
        return [f"{DATA_INDENT}{key}: {_quoted(value)}"]
    if kind is ValueKind.STRING_LIST:
        return [f"{DATA_INDENT}{key}: [{', '.join(_list_item(v) for v in value)}]"]
    if kind is ValueKind.BOOL:
        return [f"{DATA_INDENT}{key}: {'true' if value else 'false'}"]
    if kind is ValueKind.NUMBER:
        return [f"{DATA_INDENT}{key}: {value!r}"]
    # Nested objects are dumped on a single line
    return [f"{DATA_INDENT}{key}: {json.dumps(value, ensure_ascii=False, separators=(',', ':'), default=str)}"]


def _serialize_node(node: WorkflowNode) -> List[str]:
    lines = [
        f"{NODE_INDENT}- id: {_quoted(node.id)}",
        f"{FIELD_INDENT}type: {node.type}",
        f"{FIELD_INDENT}label: {_quoted(node.label)}",
        f"{FIELD_INDENT}position: {{ x: {_coord(node.position.x)}, y: {_coord(node.position.y)} }}",
        f"{FIELD_INDENT}data:",
    ]
    for key, value in node.data.items():
        lines.extend(format_value(key, value))
    lines.append("")
    return lines


def _serialize_connection(conn: Connection) -> List[str]:
    lines = [f"{NODE_INDENT}- from: {_quoted(conn.source)} -> to: {_quoted(conn.target)}"]
    # Ports only appear when they differ from output -> input
    if not conn.has_default_ports:
        lines.append(f"{FIELD_INDENT}ports: {conn.fromPort} -> {conn.toPort}")
    return lines


def serialize(nodes: List[WorkflowNode], connections: List[Connection], metadata: WorkflowMetadata) -> str:
    script = []

    # 1. Metadata header
    script.append("# Flow Definition")
    script.append(f"name: {_quoted(metadata.name)}")
    script.append(f"version: {_quoted(metadata.version)}")
    if metadata.description:
        script.append(f"description: {_quoted(metadata.description)}")
    script.append(f"tags: [{', '.join(_list_item(t) for t in metadata.tags)}]")
    script.append("")

    # 2. Nodes, in input order
    script.append("# Nodes")
    script.append("nodes:")
    for node in nodes:
        script.extend(_serialize_node(node))

    # 3. Connections
    script.append("# Connections")
    script.append("connections:")
    for conn in connections:
        script.extend(_serialize_connection(conn))

    return "\n".join(script)


def serialize_workflow(workflow: Workflow) -> str:
    return serialize(workflow.nodes, workflow.connections, workflow.metadata)
