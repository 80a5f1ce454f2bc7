from __future__ import annotations

import json
import re
from typing import Iterable, Literal

from .colors import BY_HEX
from .segments import DEFAULT_COLOR, FormattedSegment, scan_legacy

STYLE_FIELDS = ("bold", "italic", "underlined", "strikethrough", "obfuscated")

ColorName = Literal[
    "black",
    "dark_blue",
    "dark_green",
    "dark_aqua",
    "dark_red",
    "dark_purple",
    "gold",
    "gray",
    "dark_gray",
    "blue",
    "green",
    "aqua",
    "red",
    "light_purple",
    "yellow",
    "white",
]


# Minecraft text component implementation
class TextComponent:
    """
    Represents a Minecraft chat component, the recursive JSON shape
    servers use for their description.
    """

    def __init__(self, data=None):
        self.data: dict = self._normalize_component(data)

    def __repr__(self) -> str:
        """Return a string representation of the component"""
        return f"TextComponent({json.dumps(self.data, separators=(',', ':'))})"

    def __eq__(self, other) -> bool:
        if isinstance(other, TextComponent):
            return self.data == other.data
        return NotImplemented

    @property
    def text(self) -> str:
        """This node's own text, not including children"""
        if "text" in self.data:
            return str(self.data["text"])
        if "translate" in self.data:
            return str(self.data.get("fallback", self.data["translate"]))
        return ""

    # Formatting methods
    def color(self, color: ColorName | str) -> TextComponent:
        self.data["color"] = color
        return self

    def bold(self, bold: bool = True) -> TextComponent:
        """Set bold formatting"""
        self.data["bold"] = bold
        return self

    def italic(self, italic: bool = True) -> TextComponent:
        """Set italic formatting"""
        self.data["italic"] = italic
        return self

    def underlined(self, underlined: bool = True) -> TextComponent:
        """Set underlined formatting"""
        self.data["underlined"] = underlined
        return self

    def strikethrough(self, strikethrough: bool = True) -> TextComponent:
        """Set strikethrough formatting"""
        self.data["strikethrough"] = strikethrough
        return self

    def obfuscated(self, obfuscated: bool = True) -> TextComponent:
        """Set obfuscated formatting"""
        self.data["obfuscated"] = obfuscated
        return self

    def get_style(self, field: str) -> bool | None:
        """The node's own value for a style field; None when it inherits."""
        value = self.data.get(field)
        return None if value is None else bool(value)

    # Child component methods
    def append(self, component) -> TextComponent:
        """Add a child component"""
        if "extra" not in self.data:
            self.data["extra"] = []
        self.data["extra"].append(self._normalize_component(component))
        return self

    def extend(self, components) -> TextComponent:
        """Add multiple child components"""
        for component in components:
            self.append(component)
        return self

    def get_children(self) -> list[TextComponent]:
        """Get list of child components"""
        extra = self.data.get("extra") or []
        if not isinstance(extra, list):
            extra = [extra]
        return [TextComponent(child) for child in extra]

    def to_json(self) -> str:
        """Convert to JSON string"""
        return json.dumps(self.data, separators=(",", ":"))

    def _normalize_component(self, component) -> dict:
        """Convert various component formats to dict"""
        if component is None:
            return {}
        if isinstance(component, TextComponent):
            return component.data
        elif isinstance(component, str):
            return {"text": component}
        elif isinstance(component, dict):
            return dict(component)
        elif isinstance(component, list):
            # array format: first element is the parent, the rest are its extra
            if component:
                first = self._normalize_component(component[0])
                if len(component) > 1:
                    first["extra"] = [*first.get("extra", []), *component[1:]]
                return first
            return {}
        else:
            return {"text": str(component)}

    def __str__(self) -> str:
        """Convert to plain text"""
        text = self.text + "".join(str(child) for child in self.get_children())
        return re.sub("§.", "", text)

    @classmethod
    def from_segments(
        cls, segments: Iterable[FormattedSegment], default_color: str = DEFAULT_COLOR
    ) -> TextComponent:
        """
        Build a component with one child per segment.
        Only styles that are on are written, and segments in ``default_color``
        get no color, so they inherit from wherever the component is placed.
        """
        root = cls("")
        for segment in segments:
            child = cls(segment.text)
            if segment.color and segment.color != default_color:
                palette_color = BY_HEX.get(segment.color)
                child.color(palette_color.name if palette_color else segment.color)
            if segment.bold:
                child.bold()
            if segment.italic:
                child.italic()
            if segment.underline:
                child.underlined()
            if segment.strikethrough:
                child.strikethrough()
            if segment.obfuscated:
                child.obfuscated()
            root.append(child)

        # Remove the initial empty root if it has only one child
        if "extra" in root.data and len(root.data["extra"]) == 1:
            return cls(root.data["extra"][0])
        return root

    @classmethod
    def from_legacy(cls, text: str) -> TextComponent:
        """
        Convert a string with Minecraft color codes (§) to a TextComponent.
        Supports color and formatting codes. Resets formatting on §r.
        """
        return cls.from_segments(
            scan_legacy(text, escapes="§", default_color=""), default_color=""
        )
