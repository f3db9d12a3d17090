from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Dict, Any, Optional, Union, Literal

import config

NodeType = Literal["trigger", "function", "condition", "action", "agent"]
NODE_TYPES = ("trigger", "function", "condition", "action", "agent")

# Values allowed in a node's free-form data map
DataValue = Union[bool, int, float, str, List[Any], Dict[str, Any]]


class ValueKind(str, Enum):
    STRING = "string"
    MULTILINE = "multiline"
    NUMBER = "number"
    BOOL = "bool"
    STRING_LIST = "string_list"
    JSON = "json"


def value_kind(value: Any) -> ValueKind:
    """Classify a data value so the serializer can dispatch on it."""
    # bool is a subclass of int, check it first
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.MULTILINE if "\n" in value else ValueKind.STRING
    if isinstance(value, (list, tuple)):
        return ValueKind.STRING_LIST
    return ValueKind.JSON


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class SyncState(str, Enum):
    SYNCED = "synced"
    PENDING = "pending"
    ERROR = "error"


class AuthoringMode(str, Enum):
    VISUAL = "visual"
    CODE = "code"
    SPLIT = "split"


class Position(BaseModel):
    x: float = 0
    y: float = 0


class Variable(BaseModel):
    id: str
    name: str
    value: str
    type: Literal["string", "number", "boolean", "secret"] = "string"


class WorkflowNode(BaseModel):
    id: str
    type: NodeType
    label: str = ""
    position: Position = Field(default_factory=Position)
    data: Dict[str, DataValue] = Field(default_factory=dict)
    variables: List[Variable] = Field(default_factory=list)


class Connection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    source: str = Field(alias="from")
    target: str = Field(alias="to")
    fromPort: str = config.DEFAULT_FROM_PORT
    toPort: str = config.DEFAULT_TO_PORT

    @property
    def has_default_ports(self) -> bool:
        return self.fromPort == config.DEFAULT_FROM_PORT and self.toPort == config.DEFAULT_TO_PORT


class WorkflowMetadata(BaseModel):
    name: str = "Untitled Flow"
    version: str = "1.0.0"
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class PartialMetadata(BaseModel):
    """Metadata fields recovered from text; None means the field was absent."""
    name: Optional[str] = None
    version: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None

    def merge_into(self, metadata: WorkflowMetadata) -> WorkflowMetadata:
        # Only fields present in the text overwrite the host copy
        return metadata.model_copy(update=self.model_dump(exclude_none=True))


class Workflow(BaseModel):
    nodes: List[WorkflowNode] = Field(default_factory=list)
    connections: List[Connection] = Field(default_factory=list)
    metadata: WorkflowMetadata = Field(default_factory=WorkflowMetadata)


class ValidationIssue(BaseModel):
    line: int  # 1-based
    column: int  # 0-based
    message: str
    severity: Severity = Severity.ERROR


class SkippedLine(BaseModel):
    line: int
    text: str
    reason: str


class ParseResult(BaseModel):
    nodes: List[WorkflowNode] = Field(default_factory=list)
    connections: List[Connection] = Field(default_factory=list)
    metadata: PartialMetadata = Field(default_factory=PartialMetadata)
    errors: List[ValidationIssue] = Field(default_factory=list)
    skipped: List[SkippedLine] = Field(default_factory=list)


class SessionStatus(BaseModel):
    mode: AuthoringMode
    text: str
    state: SyncState
    dirty: bool
    issues: List[ValidationIssue]
    skipped: List[SkippedLine]
    can_undo: bool
    can_redo: bool
    stats: Dict[str, int]
