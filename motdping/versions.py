from dataclasses import dataclass


@dataclass(frozen=True)
class ProtocolVersion:
    label: str
    number: int

    def __str__(self) -> str:
        return f"{self.label} ({self.number})"


# newest first; one entry per protocol number, latest release wins the label
PROTOCOL_VERSIONS: tuple[ProtocolVersion, ...] = (
    ProtocolVersion("1.21.4", 769),
    ProtocolVersion("1.21.3", 768),
    ProtocolVersion("1.21.1", 767),
    ProtocolVersion("1.20.6", 766),
    ProtocolVersion("1.20.4", 765),
    ProtocolVersion("1.20.2", 764),
    ProtocolVersion("1.20.1", 763),
    ProtocolVersion("1.19.4", 762),
    ProtocolVersion("1.19.2", 760),
    ProtocolVersion("1.18.2", 758),
    ProtocolVersion("1.17.1", 756),
    ProtocolVersion("1.16.5", 754),
    ProtocolVersion("1.15.2", 578),
    ProtocolVersion("1.14.4", 498),
    ProtocolVersion("1.13.2", 404),
    ProtocolVersion("1.12.2", 340),
    ProtocolVersion("1.11.2", 316),
    ProtocolVersion("1.10.2", 210),
    ProtocolVersion("1.9.4", 110),
    ProtocolVersion("1.8.9", 47),
    ProtocolVersion("1.7.10", 5),
)

# latest, mid-recent, legacy-modern, very old
DEFAULT_CANDIDATES: tuple[str, ...] = ("1.21.4", "1.20.4", "1.16.5", "1.8.9")

_BY_LABEL = {v.label: v for v in PROTOCOL_VERSIONS}
_BY_NUMBER = {v.number: v for v in PROTOCOL_VERSIONS}


def get_version(key: str | int) -> ProtocolVersion:
    """Look a version up by label ("1.20.4") or protocol number (765)."""
    if isinstance(key, int):
        version = _BY_NUMBER.get(key)
    elif key.isdigit():
        version = _BY_NUMBER.get(int(key))
    else:
        version = _BY_LABEL.get(key)

    if version is None:
        raise ValueError(f"Unsupported protocol version {key!r}")
    return version


def resolve_candidates(keys) -> tuple[ProtocolVersion, ...]:
    candidates = tuple(get_version(k) for k in keys)
    if not candidates:
        raise ValueError("At least one protocol version is required")
    return candidates
