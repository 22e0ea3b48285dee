"""Drawing surfaces the layout engine renders tablature onto."""

from __future__ import annotations

from abc import ABC, abstractmethod
from fractions import Fraction

Number = int | float | Fraction


def _escape_html(text: str) -> str:
    """Escape the three characters that are unsafe in HTML text content."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _num(value: Number) -> str:
    """Format a coordinate, dropping the fraction when it is whole."""
    if value == int(value):
        return str(int(value))
    return f"{float(value):.2f}".rstrip("0")


class DrawingSurface(ABC):
    """
    Minimal vector drawing capability used by the layout engine.

    Styles are SVG presentation strings such as ``"stroke-width:1;stroke:black"``.
    """

    @abstractmethod
    def start(self, width: Number, height: Number) -> None:
        """Begin the canvas with the given pixel size."""

    @abstractmethod
    def end(self) -> None:
        """Finish the canvas."""

    @abstractmethod
    def rect(self, x: Number, y: Number, width: Number, height: Number, style: str = "") -> None:
        """Draw a rectangle with its top-left corner at (x, y)."""

    @abstractmethod
    def line(self, x1: Number, y1: Number, x2: Number, y2: Number, style: str = "") -> None:
        """Draw a line segment."""

    @abstractmethod
    def circle(self, cx: Number, cy: Number, r: Number, style: str = "") -> None:
        """Draw a circle centred at (cx, cy)."""

    @abstractmethod
    def text(self, x: Number, y: Number, content: str, style: str = "") -> None:
        """Draw a text label anchored at (x, y)."""

    @abstractmethod
    def begin_group(self, dx: Number, dy: Number) -> None:
        """Open a group whose contents are translated by (dx, dy)."""

    @abstractmethod
    def end_group(self) -> None:
        """Close the most recently opened group."""


class SvgSurface(DrawingSurface):
    """Accumulate drawing commands as an SVG document."""

    def __init__(self) -> None:
        self._parts: list[str] = []

    @staticmethod
    def _style(style: str) -> str:
        return f' style="{_escape_html(style)}"' if style else ""

    def start(self, width: Number, height: Number) -> None:
        self._parts.append('<?xml version="1.0"?>')
        self._parts.append(
            f'<svg width="{_num(width)}" height="{_num(height)}" '
            'xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink">'
        )

    def end(self) -> None:
        self._parts.append("</svg>")

    def rect(self, x: Number, y: Number, width: Number, height: Number, style: str = "") -> None:
        self._parts.append(
            f'<rect x="{_num(x)}" y="{_num(y)}" width="{_num(width)}" '
            f'height="{_num(height)}"{self._style(style)} />'
        )

    def line(self, x1: Number, y1: Number, x2: Number, y2: Number, style: str = "") -> None:
        self._parts.append(
            f'<line x1="{_num(x1)}" y1="{_num(y1)}" x2="{_num(x2)}" '
            f'y2="{_num(y2)}"{self._style(style)} />'
        )

    def circle(self, cx: Number, cy: Number, r: Number, style: str = "") -> None:
        self._parts.append(
            f'<circle cx="{_num(cx)}" cy="{_num(cy)}" r="{_num(r)}"{self._style(style)} />'
        )

    def text(self, x: Number, y: Number, content: str, style: str = "") -> None:
        self._parts.append(
            f'<text x="{_num(x)}" y="{_num(y)}"{self._style(style)}>{_escape_html(content)}</text>'
        )

    def begin_group(self, dx: Number, dy: Number) -> None:
        self._parts.append(f'<g transform="translate({_num(dx)},{_num(dy)})">')

    def end_group(self) -> None:
        self._parts.append("</g>")

    def getvalue(self) -> str:
        """Return the SVG markup written so far."""
        return "\n".join(self._parts) + "\n"


def build_html(title: str, svgs: list[str]) -> str:
    """
    Wrap tablature SVGs in a standalone HTML page.

    A score is one wide canvas with its pages side by side, so each
    ``.page`` div scrolls sideways on screen and prints in landscape.
    """
    title_safe = _escape_html(title)
    heading = f"  <h1>{title_safe}</h1>\n" if title else ""
    pages = "\n".join(f'  <div class="page">{_strip_xml_declaration(svg)}</div>' for svg in svgs)

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <title>{title_safe}</title>
  <style>
    body {{ font-family: sans-serif; margin: 1rem; }}
    h1 {{ font-size: 1.4rem; }}
    .page {{ overflow-x: auto; }}
    @page {{ size: landscape; }}
    @media print {{
      .page {{ overflow: visible; page-break-after: always; }}
    }}
  </style>
</head>
<body>
{heading}{pages}
</body>
</html>"""


def _strip_xml_declaration(svg: str) -> str:
    if svg.startswith("<?xml"):
        return svg.split("?>", 1)[1].lstrip()
    return svg
