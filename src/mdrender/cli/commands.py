"""CLI command implementations"""

from pathlib import Path
from typing import Annotated, Optional

import typer

from mdrender.config import Settings, load_config
from mdrender.core.parse import discover_files, parse_file
from mdrender.core.pipeline import run_render
from mdrender.core.render.highlight import supported_languages
from mdrender.log import configure_logging


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling, then configure logging."""
    try:
        settings = load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))
    configure_logging(settings.log_level)
    return settings


def render_cmd(
    path: Annotated[str, typer.Argument(help="File or directory to render")],
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    parser: Annotated[Optional[str], typer.Option("--parser-config", help="MarkdownIt preset name")] = None,
    fetch: Annotated[Optional[bool], typer.Option("--fetch-images/--no-fetch-images", help="Resolve image sizes over HTTP")] = None,
    ):
    """Render markdown files to JSON render descriptors."""
    settings = _settings(overrides={"output_dir": out, "parser_config": parser, "fetch_images": fetch})
    if not Path(path).exists():
        _fail(f"Path not found: {path}")
    output_dir = Path(settings.output_dir)
    try:
        results = run_render(path, settings, output_dir)
    except RuntimeError as e:
        _fail(str(e))
    for src, out_file in results:
        typer.echo(f"  {src} -> {out_file}")
    typer.echo(f"Rendered {len(results)} document(s) to {output_dir}/")


def tree_cmd(
    path: Annotated[str, typer.Argument(help="File or directory to inspect")],
    show_text: Annotated[bool, typer.Option("--show-text", help="Include text content of leaf nodes")] = False,
    ):
    """Print the parsed syntax tree of each markdown file."""
    settings = _settings()
    files = discover_files(Path(path))
    if not files:
        _fail(f"No markdown files found at: {path}")
    for p in files:
        try:
            parsed = parse_file(p, settings.parser_config, settings.tasklists)
        except ValueError as e:
            _fail(f"Failed to parse {p}", e)
        typer.echo(f"# {p}")
        typer.echo(parsed.tree.pretty(indent=2, show_text=show_text))


def languages_cmd():
    """List languages supported by the code highlighter."""
    for lang in supported_languages():
        aliases = f" ({', '.join(lang.aliases)})" if lang.aliases else ""
        typer.echo(f"{lang.name}{aliases}")
