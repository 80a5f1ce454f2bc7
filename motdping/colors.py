"""
Palette lookups, nearest-color quantization and gradients.

Shared by the component flattener and the preview segmenter so both
produce identical colors for identical input.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TypeAlias

RGB: TypeAlias = tuple[int, int, int]


@dataclass(frozen=True)
class MinecraftColor:
    code: str
    name: str
    hex: str

    @property
    def rgb(self) -> RGB:
        return parse_hex(self.hex)


PALETTE: tuple[MinecraftColor, ...] = (
    MinecraftColor("0", "black", "#000000"),
    MinecraftColor("1", "dark_blue", "#0000aa"),
    MinecraftColor("2", "dark_green", "#00aa00"),
    MinecraftColor("3", "dark_aqua", "#00aaaa"),
    MinecraftColor("4", "dark_red", "#aa0000"),
    MinecraftColor("5", "dark_purple", "#aa00aa"),
    MinecraftColor("6", "gold", "#ffaa00"),
    MinecraftColor("7", "gray", "#aaaaaa"),
    MinecraftColor("8", "dark_gray", "#555555"),
    MinecraftColor("9", "blue", "#5555ff"),
    MinecraftColor("a", "green", "#55ff55"),
    MinecraftColor("b", "aqua", "#55ffff"),
    MinecraftColor("c", "red", "#ff5555"),
    MinecraftColor("d", "light_purple", "#ff55ff"),
    MinecraftColor("e", "yellow", "#ffff55"),
    MinecraftColor("f", "white", "#ffffff"),
)

BY_CODE = {c.code: c for c in PALETTE}
BY_NAME = {c.name: c for c in PALETTE}
BY_HEX = {c.hex: c for c in PALETTE}

# alternate spellings accepted in tag markup
ALIASES = {"grey": "gray", "dark_grey": "dark_gray"}

_HEX_COLOR = re.compile(r"#[0-9a-fA-F]{6}")


def parse_hex(value: str) -> RGB:
    """
    Parse "#rrggbb" (leading # optional).
    Channels that aren't valid hex come out as 0 instead of raising.
    """
    digits = value.lstrip("#")
    channels = []
    for i in range(0, 6, 2):
        try:
            channels.append(int(digits[i : i + 2], 16))
        except ValueError:
            channels.append(0)
    r, g, b = channels
    return r, g, b


def to_hex(rgb: RGB) -> str:
    r, g, b = (max(0, min(255, c)) for c in rgb)
    return f"#{r:02x}{g:02x}{b:02x}"


def is_hex_color(value: str) -> bool:
    return bool(_HEX_COLOR.fullmatch(value))


def resolve_color(value: str) -> str | None:
    """Named color or #rrggbb -> lower-case hex; anything else -> None"""
    value = value.strip().lower()
    if is_hex_color(value):
        return value

    color = BY_NAME.get(ALIASES.get(value, value))
    return color.hex if color else None


def quantize(rgb: RGB | str) -> str:
    """Return the palette code nearest to ``rgb``; earlier entries win ties."""
    if isinstance(rgb, str):
        rgb = parse_hex(rgb)

    best = PALETTE[0]
    best_distance = None
    for color in PALETTE:
        distance = sum((a - b) ** 2 for a, b in zip(rgb, color.rgb))
        if best_distance is None or distance < best_distance:
            best, best_distance = color, distance
    return best.code


def _round(value: float) -> int:
    # half up, not banker's rounding
    return int(value + 0.5)


def gradient(start: RGB | str, end: RGB | str, length: int) -> list[str]:
    """One "#rrggbb" color per character, interpolated linearly from start to end."""
    if isinstance(start, str):
        start = parse_hex(start)
    if isinstance(end, str):
        end = parse_hex(end)

    if length <= 0:
        return []
    if length == 1:
        ratios = [0.5]
    else:
        ratios = [j / (length - 1) for j in range(length)]

    return [
        to_hex(tuple(_round(s + (e - s) * ratio) for s, e in zip(start, end)))  # type: ignore[arg-type]
        for ratio in ratios
    ]
