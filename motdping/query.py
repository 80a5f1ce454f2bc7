from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, TypeAlias

from .errors import AllProtocolsFailed, MotdPingException, ProtocolError, QueryError
from .formatting import flatten
from .net import StatusResponse, StatusSession
from .normalize import normalize
from .segments import Format, parse_format
from .settings import Settings
from .versions import ProtocolVersion, resolve_candidates

logger = logging.getLogger(__name__)

DEFAULT_PORT = 25565

SessionFactory: TypeAlias = Callable[..., StatusSession]


@dataclass(frozen=True)
class MotdResult:
    text: str
    icon: str | None
    protocol: ProtocolVersion | None = None
    status: StatusResponse | None = None


def parse_address(address: str, default_port: int = DEFAULT_PORT) -> tuple[str, int]:
    """
    Split "host", "host:port" or "[v6addr]:port" into (host, port).
    """
    address = address.strip()
    if not address:
        raise ValueError("Server address cannot be empty")

    if address.startswith("["):
        host, sep, rest = address[1:].partition("]")
        if not sep or not host:
            raise ValueError(f"Malformed IPv6 address {address!r}")
        port_text = rest[1:] if rest.startswith(":") else None
        if rest and port_text is None:
            raise ValueError(f"Malformed address {address!r}")
    elif address.count(":") == 1:
        host, _, port_text = address.partition(":")
    else:
        # bare hostname, or an IPv6 address without brackets
        host, port_text = address, None

    if not host:
        raise ValueError(f"Missing host in {address!r}")
    if port_text is None or port_text == "":
        return host, default_port

    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"Invalid port {port_text!r}") from None
    if not 0 < port < 65536:
        raise ValueError(f"Port {port} is out of range")
    return host, port


def decode_favicon(favicon: str) -> bytes:
    """Decode a "data:image/png;base64,..." favicon into PNG bytes"""
    _, sep, data = favicon.partition("base64,")
    try:
        return base64.b64decode(data if sep else favicon, validate=False)
    except (binascii.Error, ValueError) as e:
        raise MotdPingException(f"favicon is not valid base64: {e}") from e


def extract_motd(
    status: StatusResponse,
    format: Format | str = "legacy",
    convert_rgb: bool = False,
    max_depth: int | None = None,
) -> tuple[str, str | None]:
    target = parse_format(format)
    kwargs = {"max_depth": max_depth} if max_depth is not None else {}
    text = flatten(status.description, target, convert_rgb, **kwargs)
    return normalize(text, target), status.favicon


async def query_server(
    host: str,
    port: int = DEFAULT_PORT,
    format: Format | str = "legacy",
    *,
    convert_rgb: bool | None = None,
    candidates: Iterable[str | int] | None = None,
    settings: Settings | None = None,
    session_factory: SessionFactory = StatusSession,
) -> MotdResult:
    """
    Fetch a server's MOTD, trying each candidate protocol version in turn.

    Attempts run one at a time; the first one that gets a status response wins.
    Raises AllProtocolsFailed once every candidate has failed.
    """
    settings = settings or Settings()
    target = parse_format(format)
    if convert_rgb is None:
        convert_rgb = settings.convert_rgb
    versions = resolve_candidates(
        candidates if candidates is not None else settings.candidates
    )

    errors: list[tuple[int, Exception]] = []
    for version in versions:
        logger.debug("querying %s:%s as %s", host, port, version)
        session = session_factory(
            host,
            port,
            version.number,
            timeout=settings.timeout,
            max_frame_size=settings.max_frame_size,
        )
        try:
            status = await session.run()
        except (QueryError, ProtocolError) as e:
            logger.info("%s:%s failed with %s: %s", host, port, version, e)
            errors.append((version.number, e))
            continue

        text, icon = extract_motd(status, target, convert_rgb, settings.max_depth)
        return MotdResult(text, icon, version, status)

    error = AllProtocolsFailed(errors)
    logger.warning("%s:%s: %s", host, port, error)
    raise error from error.last_error
