"""Observer commands: a closed, ``type``-tagged union validated at the boundary.

Envelope: ``{"type": <kind>, "payload": {...}}``. Field names are camelCase
on the wire; snake_case names are accepted too.
"""

import json
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import ConfigDict, Field, TypeAdapter, ValidationError

from .models import WireModel

LogLevel = Literal["debug", "info", "notice", "warning", "error", "critical", "alert", "emergency"]
IncludeContext = Literal["none", "thisServer", "allServers"]

MAX_HISTORY_LIMIT = 1000
DEFAULT_HISTORY_LIMIT = 100
DEFAULT_HISTORY_SESSION = "default"


class CommandParseError(ValueError):
    """The observer frame is not valid JSON."""


class CommandValidationError(ValueError):
    """The frame is JSON but does not match any command schema."""

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__(", ".join(problems))


# Payloads

class NotificationPayload(WireModel):
    level: LogLevel
    logger: Optional[str] = None
    data: Any
    session_id: Optional[str] = None


class TextContent(WireModel):
    type: Literal["text"]
    text: str


class ImageContent(WireModel):
    type: Literal["image"]
    data: str
    mime_type: str


SamplingContent = Annotated[Union[TextContent, ImageContent], Field(discriminator="type")]


class SamplingMessage(WireModel):
    role: Literal["user", "assistant"]
    content: SamplingContent


class ModelHint(WireModel):
    name: Optional[str] = None


class ModelPreferences(WireModel):
    hints: Optional[List[ModelHint]] = None
    cost_priority: Optional[float] = Field(default=None, ge=0, le=1)
    speed_priority: Optional[float] = Field(default=None, ge=0, le=1)
    intelligence_priority: Optional[float] = Field(default=None, ge=0, le=1)


class SamplingPayload(WireModel):
    messages: List[SamplingMessage] = Field(..., min_length=1)
    model_preferences: Optional[ModelPreferences] = None
    system_prompt: Optional[str] = None
    include_context: Optional[IncludeContext] = None
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: int = Field(..., gt=0)
    stop_sequences: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None
    session_id: Optional[str] = None


class ElicitationProperty(WireModel):
    """One property of a requested schema. Other JSON Schema keywords pass through."""

    model_config = ConfigDict(extra="allow")

    type: Literal["string", "number", "integer", "boolean", "array", "object"]
    title: Optional[str] = None
    description: Optional[str] = None
    enum: Optional[List[Any]] = None
    enum_names: Optional[List[str]] = None
    items: Optional["ElicitationProperty"] = None
    properties: Optional[Dict[str, "ElicitationProperty"]] = None


class ElicitationSchema(WireModel):
    model_config = ConfigDict(extra="allow")

    type: Literal["object", "string", "number", "boolean", "array"]
    properties: Optional[Dict[str, ElicitationProperty]] = None
    required: Optional[List[str]] = None
    description: Optional[str] = None


class ElicitationPayload(WireModel):
    message: str = Field(..., min_length=1)
    requested_schema: ElicitationSchema
    session_id: Optional[str] = None


class MessageHistoryRequest(WireModel):
    session_id: str = DEFAULT_HISTORY_SESSION
    limit: int = Field(default=DEFAULT_HISTORY_LIMIT, gt=0, le=MAX_HISTORY_LIMIT)


# Commands

class TriggerNotificationCommand(WireModel):
    type: Literal["trigger_notification"]
    payload: NotificationPayload


class RequestSamplingCommand(WireModel):
    type: Literal["request_sampling"]
    payload: SamplingPayload


class RequestElicitationCommand(WireModel):
    type: Literal["request_elicitation"]
    payload: ElicitationPayload


class GetClientsCommand(WireModel):
    type: Literal["get_clients"]
    payload: Optional[Dict[str, Any]] = None


class GetMessageHistoryCommand(WireModel):
    type: Literal["get_message_history"]
    payload: MessageHistoryRequest = Field(default_factory=MessageHistoryRequest)


Command = Annotated[
    Union[
        TriggerNotificationCommand,
        RequestSamplingCommand,
        RequestElicitationCommand,
        GetClientsCommand,
        GetMessageHistoryCommand,
    ],
    Field(discriminator="type"),
]

_command_adapter: TypeAdapter = TypeAdapter(Command)


def format_validation_errors(error: ValidationError, kind: Optional[str] = None) -> List[str]:
    """Render pydantic errors as ``path: message`` strings.

    The union tag pydantic prepends to each location is dropped.
    """
    problems = []
    for detail in error.errors():
        loc = list(detail["loc"])
        if kind is not None and loc and loc[0] == kind:
            loc = loc[1:]
        path = ".".join(str(part) for part in loc)
        problems.append(f"{path}: {detail['msg']}" if path else detail["msg"])
    return problems


def parse_command(raw: Union[str, bytes]) -> Command:
    """Decode and validate one observer frame.

    Raises:
        CommandParseError: the frame is not JSON
        CommandValidationError: the JSON is not a known, well-formed command
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CommandParseError(str(e)) from e

    kind = data.get("type") if isinstance(data, dict) else None
    try:
        return _command_adapter.validate_python(data)
    except ValidationError as e:
        raise CommandValidationError(format_validation_errors(e, kind)) from e
