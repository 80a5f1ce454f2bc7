"""
Cleanup applied to flattened MOTD text.

Some servers send descriptions with duplicated runs (the same word or
color code repeated back to back), stray control characters and odd
unicode spaces. ``normalize`` strips those artifacts. The duplicate-word
collapse is a heuristic for that upstream data, not a general rule:
a real "ooh ooh" comes out as "ooh".
"""

import re
import unicodedata

from .segments import Format, parse_format

EDITOR_ESCAPE = "&"

_NEWLINES = re.compile(r"\r\n?")
_SPACE_VARIANTS = re.compile(r"[\t\u00a0\u1680\u2000-\u200a\u202f\u205f\u3000]")
# § and & count as the same escape so "§c&c" collapses too
_REPEATED_CODES = re.compile(
    r"([§&])(#[0-9a-fA-F]{6}|[0-9a-fk-orA-FK-OR])(?:[§&]\2)+"
)
# a code letter right after an escape is not a word
_REPEATED_WORDS = re.compile(r"(?<![§&#])\b(\w+)(?: +\1\b)+")
_NEWLINE_RUNS = re.compile(r"\n{2,}")
_SPACE_RUNS = re.compile(r" {3,}")


def strip_control(text: str) -> str:
    return "".join(
        c for c in text if c == "\n" or unicodedata.category(c) not in ("Cc", "Cf")
    )


def collapse_repeats(text: str) -> str:
    # dropping a repeated word can leave two identical codes side by side
    while True:
        collapsed = _REPEATED_CODES.sub(r"\1\2", text)
        collapsed = _REPEATED_WORDS.sub(r"\1", collapsed)
        if collapsed == text:
            return text
        text = collapsed


def normalize(text: str, target: Format | str = "legacy") -> str:
    text = _NEWLINES.sub("\n", text)
    text = _SPACE_VARIANTS.sub(" ", text)
    text = strip_control(text)
    text = collapse_repeats(text)
    text = _NEWLINE_RUNS.sub("\n", text)
    text = _SPACE_RUNS.sub("  ", text)

    if parse_format(target) == "legacy":
        text = text.replace("§", EDITOR_ESCAPE)
    return text
