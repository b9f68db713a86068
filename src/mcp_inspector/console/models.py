"""Data models shared by the registry, the message store and the console.

All models serialize with camelCase keys, the shape the browser console reads.
"""

import time
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class WireModel(BaseModel):
    """Base for models exchanged with observers or persisted as JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class TransportKind(str, Enum):
    """How a remote client is connected."""
    STDIO = "stdio"
    HTTP = "http"


class Direction(str, Enum):
    """Direction of recorded protocol traffic, seen from the server."""
    INCOMING = "incoming"
    OUTGOING = "outgoing"


class Session(WireModel):
    """Snapshot of one remote client connection."""
    session_id: str = Field(..., description="Opaque unique session identifier")
    transport: TransportKind = Field(..., description="Transport the client is connected over")
    connected_at: int = Field(..., description="Connect time, ms since epoch")
    last_activity: int = Field(..., description="Last request time, ms since epoch")
    protocol_version: Optional[str] = Field(default=None, description="Negotiated protocol version")
    request_count: int = Field(default=0, description="Requests seen on this session")
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Client name/version under 'clientInfo', last request _meta under 'lastMeta'"
    )


class ClientMetadata(WireModel):
    client_info: Optional[Dict[str, Any]] = None
    protocol_version: Optional[str] = None
    request_count: int = 0
    last_meta: Optional[Dict[str, Any]] = None


class ClientInfo(WireModel):
    """Client bookkeeping record, persisted and listed to observers."""
    client_id: str
    session_id: str
    connected_at: int
    last_seen: int
    transport: TransportKind
    metadata: ClientMetadata = Field(default_factory=ClientMetadata)

    @classmethod
    def from_session(cls, session: Session) -> "ClientInfo":
        return cls(
            client_id=session.session_id,
            session_id=session.session_id,
            connected_at=session.connected_at,
            last_seen=session.last_activity,
            transport=session.transport,
            metadata=ClientMetadata(
                client_info=session.metadata.get("clientInfo"),
                protocol_version=session.protocol_version,
                request_count=session.request_count,
                last_meta=session.metadata.get("lastMeta"),
            ),
        )


class MessageEntry(WireModel):
    """One recorded unit of protocol traffic. The message is stored verbatim."""
    id: str
    timestamp: int
    session_id: str
    direction: Direction
    message: Any = None
