"""Kablature CLI entry point."""

import sys
from pathlib import Path
from typing import NoReturn

import click

from kablature import __version__
from kablature.errors import KablatureError
from kablature.layout import LayoutConfig
from kablature.lexer import Lexer
from kablature.log import setup_logger
from kablature.midi_exporter import MidiExporter
from kablature.parser import parse
from kablature.score_exporter import ScoreExporter


def _read_notation(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def _fail(message: str) -> NoReturn:
    click.echo(f"  ERROR: {message}", err=True)
    sys.exit(1)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="kablature")
@click.option("--verbose", "-v", is_flag=True, help="Log every stage of the pipeline.")
def main(verbose: bool) -> None:
    """Kablature: turn melody notation into piano tablature."""
    setup_logger(verbose)


# ── render subcommand ──────────────────────────────────────────────────────────

@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination file path. Defaults to INPUT_FILE with the format's extension.",
)
@click.option(
    "--beats",
    "-b",
    type=click.IntRange(min=1),
    default=8,
    show_default=True,
    help="Eighth beats per measure.",
)
@click.option(
    "--measures",
    "-m",
    type=click.IntRange(min=1),
    default=7,
    show_default=True,
    help="Measures per tablature page.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["svg", "html"], case_sensitive=False),
    default="svg",
    show_default=True,
    help="Output format: bare SVG or printable HTML wrapping the SVG.",
)
@click.option(
    "--title",
    default=None,
    metavar="TEXT",
    help="Title shown in the HTML header. Defaults to the input filename stem.",
)
def render(
    input_file: str,
    output: str | None,
    beats: int,
    measures: int,
    output_format: str,
    title: str | None,
) -> None:
    """
    Render a notation file as tablature.

    \b
    Examples:
      kablature render melody.kab
      kablature render melody.kab -o score.svg -b 6
      kablature render melody.kab --format html --title "My Song"
    """
    input_path = Path(input_file)
    normalized_format = output_format.lower()
    resolved_title = title if title is not None else input_path.stem.replace("_", " ")
    resolved_output = output if output is not None else str(input_path.with_suffix(f".{normalized_format}"))

    click.echo(f"kablature v{__version__}")
    click.echo(f"  Input  : {input_file}")
    click.echo(f"  Format : {normalized_format}  |  {beats} beats x {measures} measures")
    click.echo(f"  Output : {resolved_output}")
    click.echo()

    exporter = ScoreExporter(
        title=resolved_title,
        output_format=normalized_format,
        config=LayoutConfig(beats_per_measure=beats, measures_per_page=measures),
    )
    try:
        exporter.export(input_file, resolved_output)
    except OSError as exc:
        _fail(f"Could not read or write file: {exc}")
    except KablatureError as exc:
        _fail(f"Could not render score: {exc}")

    click.echo(f"Done!  Open '{resolved_output}' in any browser or SVG viewer.")


# ── tokens subcommand ──────────────────────────────────────────────────────────

@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, readable=True))
def tokens(input_file: str) -> None:
    """Print the tokens of a notation file, one per line."""
    try:
        for token in Lexer(_read_notation(input_file)):
            click.echo(str(token))
    except KablatureError as exc:
        _fail(str(exc))


# ── symbols subcommand ─────────────────────────────────────────────────────────

@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, readable=True))
def symbols(input_file: str) -> None:
    """Print the parsed symbols of a notation file, one per line."""
    try:
        for symbol in parse(_read_notation(input_file)):
            click.echo(str(symbol))
    except KablatureError as exc:
        _fail(str(exc))


# ── midi subcommand ────────────────────────────────────────────────────────────

@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination MIDI file path. Defaults to INPUT_FILE with a .mid extension.",
)
@click.option(
    "--tempo",
    type=click.IntRange(20, 300),
    default=MidiExporter.DEFAULT_TEMPO,
    show_default=True,
    help="Playback tempo in BPM.",
)
def midi(input_file: str, output: str | None, tempo: int) -> None:
    """Write the melody of a notation file as MIDI."""
    resolved_output = output if output is not None else str(Path(input_file).with_suffix(".mid"))

    try:
        symbols = parse(_read_notation(input_file))
    except KablatureError as exc:
        _fail(f"Could not parse notation: {exc}")

    click.echo(f"Writing {len(symbols)} symbol(s) → '{resolved_output}'...")
    try:
        MidiExporter(tempo=tempo).export(symbols, resolved_output)
    except OSError as exc:
        _fail(f"Could not write MIDI file: {exc}")

    click.echo(f"Done!  Open '{resolved_output}' in any MIDI player.")
