"""
Flatten chat components into legacy color-code text or tag markup.

Legacy output only emits a code when the attribute differs from what was
last emitted. Tag output wraps each node in the tags for the attributes
it changes relative to its parent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from .colors import BY_CODE, BY_HEX, BY_NAME, quantize, resolve_color
from .components import STYLE_FIELDS, TextComponent
from .segments import Format, parse_format, scan_legacy, segment_formatted_text

logger = logging.getLogger(__name__)

LEGACY_ESCAPE = "§"
LEGACY_STYLE_CODES = {
    "bold": "l",
    "italic": "o",
    "underlined": "n",
    "strikethrough": "m",
    "obfuscated": "k",
}
DEFAULT_MAX_DEPTH = 64


@dataclass(frozen=True)
class Style:
    """Effective style of a node: palette name, "#rrggbb" or None for color"""

    color: str | None = None
    bold: bool = False
    italic: bool = False
    underlined: bool = False
    strikethrough: bool = False
    obfuscated: bool = False

    def inherit(self, component: TextComponent) -> Style:
        """Style of ``component`` when placed inside a node styled ``self``"""
        changes: dict = {}

        color = component.data.get("color")
        if isinstance(color, str):
            if color.lower() == "reset":
                changes["color"] = None
            elif (resolved := resolve_color(color)) is not None:
                palette_color = BY_HEX.get(resolved)
                changes["color"] = palette_color.name if palette_color else resolved

        for field in STYLE_FIELDS:
            if (value := component.get_style(field)) is not None:
                changes[field] = value

        return replace(self, **changes)


def expand_legacy(component: TextComponent) -> TextComponent:
    """Move text carrying § codes into child components."""
    text = component.text
    if LEGACY_ESCAPE not in text:
        return component

    data = {k: v for k, v in component.data.items() if k not in ("translate", "extra")}
    data["text"] = ""
    expanded = TextComponent(data)
    expanded.append(TextComponent.from_legacy(text))
    expanded.extend(component.get_children())
    return expanded


class _LegacyWriter:
    def __init__(self, convert_rgb: bool):
        self.convert_rgb = convert_rgb
        self.parts: list[str] = []
        # last emitted state
        self.color: str | None = None
        self.flags = dict.fromkeys(STYLE_FIELDS, False)

    def color_code(self, color: str | None) -> str | None:
        if color is None:
            return None
        if color in BY_NAME:
            return LEGACY_ESCAPE + BY_NAME[color].code
        if self.convert_rgb:
            return LEGACY_ESCAPE + quantize(color)
        return LEGACY_ESCAPE + color

    def reset(self):
        self.parts.append(LEGACY_ESCAPE + "r")
        self.color = None
        self.flags = dict.fromkeys(STYLE_FIELDS, False)

    def write(self, text: str, style: Style):
        if not text:
            return

        code = self.color_code(style.color)
        # the only way to turn a style off is a full reset
        if (code is None and self.color is not None) or any(
            self.flags[f] and not getattr(style, f) for f in STYLE_FIELDS
        ):
            self.reset()

        if code is not None and code != self.color:
            self.parts.append(code)
            self.color = code
            # color codes clear formatting client side
            self.flags = dict.fromkeys(STYLE_FIELDS, False)

        for field in STYLE_FIELDS:
            if getattr(style, field) and not self.flags[field]:
                self.parts.append(LEGACY_ESCAPE + LEGACY_STYLE_CODES[field])
                self.flags[field] = True

        self.parts.append(text)

    def write_unstyled(self, text: str):
        self.flags = dict.fromkeys(STYLE_FIELDS, False)
        self.parts.append(text)


class _Flattener:
    def __init__(self, convert_rgb: bool, max_depth: int):
        self.convert_rgb = convert_rgb
        self.max_depth = max_depth
        self.truncated = False

    def too_deep(self, depth: int) -> bool:
        if depth <= self.max_depth:
            return False
        if not self.truncated:
            logger.warning(
                "chat component nested deeper than %d levels; dropping the rest",
                self.max_depth,
            )
            self.truncated = True
        return True

    def legacy(self, component: TextComponent) -> str:
        writer = _LegacyWriter(self.convert_rgb)
        self._walk_legacy(component, Style(), writer, 0)
        return "".join(writer.parts)

    def _walk_legacy(
        self, component: TextComponent, parent: Style, writer: _LegacyWriter, depth: int
    ):
        if self.too_deep(depth):
            return

        component = expand_legacy(component)
        style = parent.inherit(component)
        if component.data.get("reset") is True:
            writer.write_unstyled(component.text)
        else:
            writer.write(component.text, style)

        for child in component.get_children():
            self._walk_legacy(child, style, writer, depth + 1)

    def color_tag(self, color: str | None) -> str:
        if color is None:
            return "gray"
        if color not in BY_NAME and self.convert_rgb:
            return BY_CODE[quantize(color)].name
        return color

    def tagged(self, component: TextComponent, parent: Style, depth: int = 0) -> str:
        if self.too_deep(depth):
            return ""

        component = expand_legacy(component)
        style = parent.inherit(component)
        body = component.text + "".join(
            self.tagged(child, style, depth + 1) for child in component.get_children()
        )
        if not body:
            return ""

        opening, closing = [], []
        if style.color != parent.color:
            opening.append(f"<color:{self.color_tag(style.color)}>")
            closing.append("</color>")

        for field in STYLE_FIELDS:
            value = getattr(style, field)
            if value != getattr(parent, field):
                name = field if value else f"!{field}"
                opening.append(f"<{name}>")
                closing.append(f"</{name}>")

        return "".join(opening) + body + "".join(reversed(closing))


def flatten(
    component,
    target: Format | str = "legacy",
    convert_rgb: bool = False,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> str:
    """
    Flatten a chat component (TextComponent, dict, list or str) to text.

    ``target`` is "legacy" for § codes or "tagged" for MiniMessage-style tags.
    With ``convert_rgb`` hex colors are quantized to the nearest palette color.
    """
    if not isinstance(component, TextComponent):
        component = TextComponent(component)

    flattener = _Flattener(convert_rgb, max_depth)
    if parse_format(target) == "legacy":
        return flattener.legacy(component)
    return flattener.tagged(component, Style())


def legacy_to_tagged(text: str) -> str:
    """Rewrite &/§ color codes as tags"""
    return flatten(TextComponent.from_segments(scan_legacy(text)), "tagged")


def tagged_to_legacy(text: str, convert_rgb: bool = True) -> str:
    """Rewrite tag markup, gradients included, as § color codes"""
    segments = segment_formatted_text(text, "tagged")
    return flatten(TextComponent.from_segments(segments), "legacy", convert_rgb)
