"""Pipeline step functions: parse, render, resolve images, and write JSON output"""

import asyncio
from pathlib import Path
from typing import Optional

from loguru import logger

from mdrender.config import Settings
from mdrender.core.fetch import HttpImageFetcher
from mdrender.core.models import ContentBlock, ParsedDoc, RenderedDocument
from mdrender.core.parse import discover_files, parse_file, parse_markdown
from mdrender.core.render.dispatch import render_tree
from mdrender.core.render.images import ImageFetcher, ImageResolver


def render_markdown(
    text: str,
    settings: Optional[Settings] = None,
    resolver: Optional[ImageResolver] = None,
    ) -> list[ContentBlock]:
    """Render a markdown body (no frontmatter) into descriptors."""
    settings = settings or Settings()
    tree = parse_markdown(text, settings.parser_config, settings.tasklists)
    return render_tree(tree, text, resolver, settings.honor_list_start)


def render_document(
    parsed: ParsedDoc,
    settings: Optional[Settings] = None,
    resolver: Optional[ImageResolver] = None,
    ) -> RenderedDocument:
    """Render an already parsed document."""
    settings = settings or Settings()
    blocks = render_tree(parsed.tree, parsed.markdown, resolver, settings.honor_list_start)
    return RenderedDocument(
        slug=parsed.slug,
        path=str(parsed.path),
        frontmatter=parsed.frontmatter,
        blocks=blocks,
    )


def render_file(
    path: Path,
    settings: Optional[Settings] = None,
    resolver: Optional[ImageResolver] = None,
    ) -> RenderedDocument:
    """Parse and render one markdown file."""
    settings = settings or Settings()
    parsed = parse_file(path, settings.parser_config, settings.tasklists)
    return render_document(parsed, settings, resolver)


async def render_file_async(
    path: Path,
    settings: Optional[Settings] = None,
    fetcher: Optional[ImageFetcher] = None,
    ) -> RenderedDocument:
    """Render one file inside the running loop and wait for every image to settle."""
    settings = settings or Settings()
    resolver = ImageResolver(fetcher=fetcher, base_url=settings.image_base_url)
    doc = render_file(path, settings, resolver)
    await resolver.drain()
    return doc


async def _render_all(files: list[Path], settings: Settings) -> list[tuple[Path, RenderedDocument]]:
    results = []
    async with HttpImageFetcher(settings.fetch_timeout, settings.max_image_bytes) as fetcher:
        for p in files:
            try:
                results.append((p, await render_file_async(p, settings, fetcher)))
            except Exception as e:
                raise RuntimeError(f"Failed to render {p}: {e}") from e
    return results


def run_render(
    path: str,
    settings: Settings,
    output_dir: Path,
    ) -> list[tuple[Path, Path]]:
    """Render path and write RenderedDocument JSON to output_dir. Returns (source_path, json_file) pairs."""
    files = discover_files(Path(path))
    if settings.fetch_images:
        rendered = asyncio.run(_render_all(files, settings))
    else:
        rendered = []
        resolver = ImageResolver(base_url=settings.image_base_url)
        for p in files:
            try:
                rendered.append((p, render_file(p, settings, resolver)))
            except Exception as e:
                raise RuntimeError(f"Failed to render {p}: {e}") from e

    output_dir.mkdir(parents=True, exist_ok=True)
    results = []
    for p, doc in rendered:
        out_file = output_dir / f"{doc.slug}.json"
        out_file.write_text(doc.model_dump_json(indent=2))
        logger.debug(f"Wrote {out_file} ({len(doc.blocks)} blocks)")
        results.append((p, out_file))
    return results
