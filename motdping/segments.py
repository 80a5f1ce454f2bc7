"""
Turn formatted text (legacy `&`/`§` codes or MiniMessage-style tags)
into styled segments for preview rendering. No I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Literal, TypeAlias

from .colors import BY_CODE, gradient, is_hex_color, resolve_color

Format: TypeAlias = Literal["legacy", "tagged"]

FORMAT_ALIASES: dict[str, Format] = {
    "legacy": "legacy",
    "minecraft": "legacy",
    "tagged": "tagged",
    "minimessage": "tagged",
}

DEFAULT_COLOR = "#aaaaaa"  # server list MOTDs render gray unless colored
LEGACY_ESCAPES = "&§"

LEGACY_FLAGS = {
    "k": "obfuscated",
    "l": "bold",
    "m": "strikethrough",
    "n": "underline",
    "o": "italic",
}

TAG_FLAGS = {
    "bold": "bold",
    "b": "bold",
    "italic": "italic",
    "i": "italic",
    "em": "italic",
    "underlined": "underline",
    "u": "underline",
    "strikethrough": "strikethrough",
    "st": "strikethrough",
    "obfuscated": "obfuscated",
    "obf": "obfuscated",
}
COLOR_TAGS = ("color", "colour", "c")


def parse_format(value: str) -> Format:
    try:
        return FORMAT_ALIASES[value.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown format {value!r}; expected one of {sorted(FORMAT_ALIASES)}"
        ) from None


@dataclass(frozen=True)
class FormattedSegment:
    text: str
    color: str = DEFAULT_COLOR
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strikethrough: bool = False
    obfuscated: bool = False

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "color": self.color,
            "bold": self.bold,
            "italic": self.italic,
            "underline": self.underline,
            "strikethrough": self.strikethrough,
            "obfuscated": self.obfuscated,
        }


def segment_formatted_text(
    text: str, format: Format | str = "legacy"
) -> list[FormattedSegment]:
    if parse_format(format) == "legacy":
        return scan_legacy(text)
    return _TagScanner(text).scan()


def scan_legacy(
    text: str, escapes: str = LEGACY_ESCAPES, default_color: str = DEFAULT_COLOR
) -> list[FormattedSegment]:
    segments: list[FormattedSegment] = []
    style = FormattedSegment("", color=default_color)
    buffer: list[str] = []

    def flush():
        if buffer:
            segments.append(replace(style, text="".join(buffer)))
            buffer.clear()

    i = 0
    while i < len(text):
        char = text[i]
        if char in escapes and i + 1 < len(text):
            code = text[i + 1].lower()
            if code == "#" and is_hex_color(text[i + 1 : i + 8]):
                flush()
                style = FormattedSegment("", color=text[i + 1 : i + 8].lower())
                i += 8
                continue
            if code in BY_CODE:
                # color codes reset formatting
                flush()
                style = FormattedSegment("", color=BY_CODE[code].hex)
                i += 2
                continue
            if code in LEGACY_FLAGS:
                flush()
                style = replace(style, **{LEGACY_FLAGS[code]: True})
                i += 2
                continue
            if code == "r":
                flush()
                style = FormattedSegment("", color=default_color)
                i += 2
                continue

        buffer.append(char)
        i += 1

    flush()
    return segments


@dataclass
class _GradientSpec:
    start: str
    end: str
    chars: list[FormattedSegment] = field(default_factory=list)


class _TagScanner:
    def __init__(self, text: str):
        self.text = text
        self.segments: list[FormattedSegment] = []
        self.style = FormattedSegment("")
        self.buffer: list[str] = []
        self.gradient: _GradientSpec | None = None
        # previous values of each attribute, restored by the closing tag
        self.stacks: dict[str, list] = {}

    def scan(self) -> list[FormattedSegment]:
        text = self.text
        i = 0
        while i < len(text):
            if text[i] == "<":
                close = text.find(">", i + 1)
                reopen = text.find("<", i + 1)
                if (
                    close != -1
                    and (reopen == -1 or close < reopen)
                    and self.handle_tag(text[i + 1 : close])
                ):
                    i = close + 1
                    continue

            self.append(text[i])
            i += 1

        # unterminated tags resolve with whatever state is current
        self.flush()
        self.end_gradient()
        return self.segments

    def append(self, text: str):
        if self.gradient is not None:
            self.gradient.chars.extend(replace(self.style, text=c) for c in text)
        else:
            self.buffer.append(text)

    def flush(self):
        if self.buffer:
            self.segments.append(replace(self.style, text="".join(self.buffer)))
            self.buffer.clear()

    def end_gradient(self):
        if self.gradient is None:
            return

        spec, self.gradient = self.gradient, None
        colors = gradient(spec.start, spec.end, len(spec.chars))
        self.segments.extend(
            replace(char, color=color) for char, color in zip(spec.chars, colors)
        )

    def push(self, attr: str, value):
        self.flush()
        self.stacks.setdefault(attr, []).append(getattr(self.style, attr))
        self.style = replace(self.style, **{attr: value})

    def pop(self, attr: str):
        self.flush()
        stack = self.stacks.get(attr)
        default = getattr(FormattedSegment(""), attr)
        self.style = replace(self.style, **{attr: stack.pop() if stack else default})

    def handle_tag(self, inner: str) -> bool:
        """Apply one tag; False means it isn't a tag and should stay literal."""
        name = inner.strip().lower()

        if name.startswith("/"):
            return self.handle_close(name[1:].strip())

        if name in ("newline", "br"):
            self.append("\n")
            return True

        if name == "reset":
            self.flush()
            self.end_gradient()
            self.style = FormattedSegment("")
            self.stacks.clear()
            return True

        negate = name.startswith("!")
        key = name[1:] if negate else name
        if key in TAG_FLAGS:
            self.push(TAG_FLAGS[key], not negate)
            return True
        if negate:
            return False

        head, _, rest = name.partition(":")
        if head == "gradient":
            stops = [resolve_color(stop) for stop in rest.split(":") if stop]
            if len(stops) < 2 or None in stops:
                return False
            self.flush()
            self.end_gradient()
            self.gradient = _GradientSpec(stops[0], stops[-1])  # type: ignore[arg-type]
            return True

        color = resolve_color(rest) if head in COLOR_TAGS else resolve_color(name)
        if color is None:
            return False
        self.push("color", color)
        return True

    def handle_close(self, name: str) -> bool:
        key = name.lstrip("!")
        if key in TAG_FLAGS:
            self.pop(TAG_FLAGS[key])
            return True

        head = name.partition(":")[0]
        if head == "gradient":
            self.end_gradient()
            return True
        if head == "reset":
            return True
        if head in COLOR_TAGS or resolve_color(name) is not None:
            self.pop("color")
            return True
        return False
