"""ScoreExporter: converts notation files to SVG or HTML tablature."""

from __future__ import annotations

import logging
from typing import Final

from kablature.layout import LayoutConfig, render_score
from kablature.parser import parse
from kablature.surfaces import SvgSurface, build_html

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS: Final[set[str]] = {"svg", "html"}


class ScoreExporter:
    """
    Convert notation text into tablature output.

    Supported formats:
    - ``svg``: a single SVG document holding every page side by side.
    - ``html``: the same SVG wrapped in a self-contained, printable HTML file.
    """

    def __init__(
        self,
        title: str = "",
        output_format: str = "svg",
        config: LayoutConfig | None = None,
    ) -> None:
        self.title = title
        normalized = output_format.strip().lower()
        if normalized not in SUPPORTED_FORMATS:
            supported = ", ".join(sorted(SUPPORTED_FORMATS))
            raise ValueError(f"Unsupported output format '{output_format}'. Use one of: {supported}.")
        self.output_format = normalized
        self.config = config or LayoutConfig()

    @property
    def default_extension(self) -> str:
        return f".{self.output_format}"

    def render_svg(self, notation: str) -> str:
        """
        Render notation text to an SVG document.

        Raises:
            LexError, ParseError, LayoutError: If the notation is malformed.
        """
        symbols = parse(notation)
        surface = SvgSurface()
        layout = render_score(symbols, surface, self.config)
        logger.info("Rendered %d measure(s) on %d page(s).", layout.measure, layout.total_pages)
        return surface.getvalue()

    def render(self, notation: str) -> str:
        """Render notation text into the selected output format."""
        svg = self.render_svg(notation)
        if self.output_format == "html":
            return build_html(self.title, [svg])
        return svg

    def export(self, input_path: str, output_path: str) -> None:
        """
        Read a notation file and write the rendered tablature to disk.

        Nothing is written when rendering fails.

        Raises:
            KablatureError: If the notation is malformed.
            OSError: If a file cannot be read or written.
        """
        with open(input_path, encoding="utf-8") as fh:
            notation = fh.read()

        content = self.render(notation)

        with open(output_path, "w", encoding="utf-8") as fh:
            fh.write(content)
