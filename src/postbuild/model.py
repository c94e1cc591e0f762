# model.py
from __future__ import annotations

import html
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .icons import IconResolver


# ---------------------------------------------------------------------
# Build results
# ---------------------------------------------------------------------

class Result(IntEnum):
    """Build result, ordered from best to worst."""
    SUCCESS = 0
    UNSTABLE = 1
    FAILURE = 2
    NOT_BUILT = 3
    ABORTED = 4

    def is_worse_than(self, other: "Result") -> bool:
        return self > other

    def is_better_than(self, other: "Result") -> bool:
        return self < other

    def combine(self, other: "Result") -> "Result":
        """Return the worse of the two results."""
        return self if self >= other else other


class Behavior(Enum):
    """What a failing script does to the build result."""
    SUCCESS = 0
    UNSTABLE = 1
    FAILURE = 2

    @property
    def result(self) -> Result:
        return Result[self.name]

    @classmethod
    def parse(cls, value: Any) -> "Behavior":
        """Accept a Behavior, its persisted integer, or its name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        if isinstance(value, str):
            if value.isdigit():
                return cls(int(value))
            try:
                return cls[value.upper()]
            except KeyError:
                pass
        raise ValueError(f"Unknown behavior: {value!r}")


# ---------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------

INFO_ICON = "info.gif"
WARNING_ICON = "warning.gif"
ERROR_ICON = "error.gif"


@dataclass(frozen=True)
class Badge:
    """
    A small tag shown next to a build.

    icon_path is None for text-only badges ("short text"). Text and
    style values are passed to the view layer as given (no escaping).
    """
    icon_path: Optional[str]
    text: str
    color: str = "#000000"
    background: str = "#FFFF00"
    border: str = "1px"
    border_color: str = "#C0C000"
    link: Optional[str] = None

    @property
    def is_text_only(self) -> bool:
        return self.icon_path is None

    @classmethod
    def create_badge(
        cls,
        icon: str,
        text: str,
        link: str | None = None,
        *,
        icons: "IconResolver",
    ) -> "Badge":
        return cls(icon_path=icons.resolve(icon), text=text, link=link)

    @classmethod
    def create_short_text(
        cls,
        text: str,
        color: str = "#000000",
        background: str = "#FFFF00",
        border: str = "1px",
        border_color: str = "#C0C000",
    ) -> "Badge":
        return cls(
            icon_path=None,
            text=text,
            color=color,
            background=background,
            border=border,
            border_color=border_color,
        )

    @classmethod
    def create_info_badge(cls, text: str, *, icons: "IconResolver") -> "Badge":
        return cls(icon_path=icons.resolve(INFO_ICON), text=text)

    @classmethod
    def create_warning_badge(cls, text: str, *, icons: "IconResolver") -> "Badge":
        return cls(icon_path=icons.resolve(WARNING_ICON), text=text)

    @classmethod
    def create_error_badge(cls, text: str, *, icons: "IconResolver") -> "Badge":
        return cls(icon_path=icons.resolve(ERROR_ICON), text=text)

    def to_dict(self) -> Dict[str, Any]:
        """Exported view of the badge (what the host renders)."""
        return {
            "kind": "badge",
            "text_only": self.is_text_only,
            "icon_path": self.icon_path,
            "text": self.text,
            "color": self.color,
            "background": self.background,
            "border": self.border,
            "border_color": self.border_color,
            "link": self.link,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Badge":
        return cls(
            icon_path=data.get("icon_path"),
            text=data["text"],
            color=data.get("color", "#000000"),
            background=data.get("background", "#FFFF00"),
            border=data.get("border", "1px"),
            border_color=data.get("border_color", "#C0C000"),
            link=data.get("link"),
        )


# ---------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------

@dataclass(eq=False)
class Summary:
    """A rich-text block shown on the build page, built up by appends."""
    icon_path: Optional[str]
    _parts: list[str] = field(default_factory=list, repr=False)

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def append_text(self, text: str, escape_html: bool = False) -> None:
        if escape_html:
            text = html.escape(text, quote=True)
        self._parts.append(text)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "summary", "icon_path": self.icon_path, "text": self.text}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Summary":
        summary = cls(icon_path=data.get("icon_path"))
        if data.get("text"):
            summary.append_text(data["text"])
        return summary
