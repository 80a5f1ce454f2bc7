class MotdPingException(Exception):
    """Base class for motdping errors.

    Attributes
    ----------
    code : str | None
        A short machine-friendly error code (e.g., "SLP-TIMEOUT").
    detail : str | None
        Optional extra detail (e.g., the offending payload).
    """

    def __init__(
        self, message: str = "", *, code: str | None = None, detail: str | None = None
    ):
        super().__init__(message)
        self.code = code
        self.detail = detail

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {super().__str__()}"
        return super().__str__()


class ProtocolError(MotdPingException):
    """Raised when bytes on the wire can't be decoded"""


class MalformedVarint(ProtocolError):
    """Raised for a varint longer than 5 bytes or an impossible frame length."""


class IncompleteVarint(ProtocolError):
    """Raised when the input ends in the middle of a varint; more data may fix it."""


class QueryError(MotdPingException):
    """Base class for failures of a status query"""


class ConnectionTimeout(QueryError):
    """Raised when no complete response arrives within the timeout."""


class ServerConnectionError(QueryError):
    """Raised for refused/reset connections and name resolution failures."""


class UnexpectedClose(QueryError):
    """Raised when the server closes the connection before a response frame completes."""


class JsonParseFailure(QueryError):
    """Raised when the status response payload is not valid JSON."""


class AllProtocolsFailed(QueryError):
    """Raised when every fallback protocol version failed.

    ``errors`` holds ``(protocol, exception)`` pairs in attempt order;
    the most recent exception is also chained as ``__cause__``.
    """

    def __init__(self, errors: list[tuple[int, Exception]], message: str = ""):
        self.errors = errors
        last = self.last_error
        super().__init__(
            message or f"all {len(errors)} protocol versions failed: {last}",
            code="SLP-ALL-FAILED",
        )

    @property
    def last_error(self) -> Exception | None:
        return self.errors[-1][1] if self.errors else None
