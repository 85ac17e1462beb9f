"""Unit tests for core/pipeline.py"""

import asyncio
import json

import pytest

from mdrender.config import Settings
from mdrender.core.models import (
    HeadingBlock,
    ImageBlock,
    LoadStatus,
    ParagraphBlock,
    RenderedDocument,
    Size,
)
from mdrender.core.pipeline import render_file, render_file_async, render_markdown, run_render
from mdrender.core.render.images import FetchedImage, ImageFetchError


class FakeFetcher:
    def __init__(self):
        self.calls: list[str] = []

    async def fetch(self, url: str) -> FetchedImage:
        self.calls.append(url)
        await asyncio.sleep(0)
        if url.endswith("broken.png"):
            raise ImageFetchError("Not a decodable image")
        return FetchedImage(url=url, size=Size(width=1200, height=300))


@pytest.fixture(autouse=True)
def chdir_tmp(tmp_path, monkeypatch):
    """Run each test from a clean tmp directory so relative paths are isolated."""
    monkeypatch.chdir(tmp_path)


def test_render_markdown_defaults():
    """render_markdown works without settings or resolver."""
    blocks = render_markdown("# Title\n\nBody *text*.\n")
    assert isinstance(blocks[0], HeadingBlock)
    assert isinstance(blocks[1], ParagraphBlock)
    assert blocks[1].text.text == "Body text."


def test_render_markdown_respects_settings():
    """Parser preset and list numbering come from settings."""
    settings = Settings(parser_config="commonmark", honor_list_start=False)
    blocks = render_markdown("5. a\n6. b\n\n| x |\n|---|\n", settings)
    assert [i.number for i in blocks[0].items] == [1, 2]
    assert isinstance(blocks[1], ParagraphBlock)


def test_render_file_builds_document(tmp_path):
    """render_file carries slug, path and frontmatter into the RenderedDocument."""
    f = tmp_path / "guide.md"
    f.write_text("---\ntitle: Guide\n---\n# Guide\n")
    doc = render_file(f)
    assert isinstance(doc, RenderedDocument)
    assert doc.slug == "guide"
    assert doc.path == str(f)
    assert doc.frontmatter == {"title": "Guide"}
    assert doc.blocks[0].text.text == "Guide"


@pytest.mark.asyncio
async def test_render_file_async_settles_images(tmp_path):
    """Images are fetched relative to the base URL and settled before returning."""
    f = tmp_path / "pics.md"
    f.write_text("![ok](img/ok.png)\n\n![bad](https://cdn.example.com/broken.png)\n\n![none]()\n")
    fetcher = FakeFetcher()
    settings = Settings(image_base_url="https://example.com/docs/")
    doc = await render_file_async(f, settings, fetcher)
    ok, bad, none = doc.blocks
    assert all(isinstance(b, ImageBlock) for b in doc.blocks)
    assert ok.state.status == LoadStatus.loaded
    assert ok.state.natural_size == Size(width=1200, height=300)
    assert ok.constrained_size(settings.max_image_width, settings.max_image_height) == Size(width=600, height=150)
    assert bad.state.status == LoadStatus.failed
    assert none.state.status == LoadStatus.failed
    assert sorted(fetcher.calls) == ["https://cdn.example.com/broken.png", "https://example.com/docs/img/ok.png"]


def test_run_render_writes_json(tmp_path):
    """run_render writes one JSON file per document, named by slug."""
    src = tmp_path / "docs"
    src.mkdir()
    (src / "a.md").write_text("# A\n")
    (src / "b.md").write_text("---\nslug: custom\n---\n- [x] done\n")
    out = tmp_path / "dist"
    results = run_render(str(src), Settings(), out)
    assert [p.name for _, p in results] == ["a.json", "custom.json"]
    data = json.loads((out / "custom.json").read_text())
    assert data["version"] == "1.0"
    assert data["blocks"][0]["type"] == "list"
    assert data["blocks"][0]["items"][0]["checkbox"] == "checked"
    restored = RenderedDocument.model_validate_json((out / "a.json").read_text())
    assert restored.blocks[0].type == "heading"


def test_run_render_with_fetching_enabled(tmp_path):
    """With fetch_images on, documents without images render without network access."""
    (tmp_path / "a.md").write_text("# A\n\ntext\n")
    results = run_render(str(tmp_path / "a.md"), Settings(fetch_images=True), tmp_path / "dist")
    assert len(results) == 1
    assert (tmp_path / "dist" / "a.json").exists()


def test_run_render_wraps_errors(tmp_path):
    """A document that cannot be parsed raises RuntimeError naming the file."""
    bad = tmp_path / "bad.md"
    bad.write_text("---\ntitle: [unclosed\n---\n# x\n")
    with pytest.raises(RuntimeError, match="Failed to render .*bad.md"):
        run_render(str(bad), Settings(), tmp_path / "dist")
