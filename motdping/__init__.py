from .errors import (
    AllProtocolsFailed,
    ConnectionTimeout,
    JsonParseFailure,
    MalformedVarint,
    MotdPingException,
    ServerConnectionError,
    UnexpectedClose,
)
from .formatting import flatten, legacy_to_tagged, tagged_to_legacy
from .query import MotdResult, parse_address, query_server
from .segments import FormattedSegment, segment_formatted_text

__all__ = [
    "AllProtocolsFailed",
    "ConnectionTimeout",
    "FormattedSegment",
    "JsonParseFailure",
    "MalformedVarint",
    "MotdPingException",
    "MotdResult",
    "ServerConnectionError",
    "UnexpectedClose",
    "flatten",
    "legacy_to_tagged",
    "parse_address",
    "query_server",
    "segment_formatted_text",
    "tagged_to_legacy",
]
