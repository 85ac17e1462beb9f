"""File discovery, frontmatter extraction, and markdown-it syntax tree parsing"""

import re
from pathlib import Path
from typing import Any

import yaml
from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode
from mdit_py_plugins.tasklists import tasklists_plugin

from mdrender.core.models import ParsedDoc
from mdrender.core.utils.slug import slugify


FRONTMATTER_RE = re.compile(r'^---\s*\n(.*?)\n---\s*\n', re.DOTALL)
MD_EXTENSIONS = {'.md', '.mdx'}


def make_parser(preset: str = 'gfm-like', tasklists: bool = True) -> MarkdownIt:
    """Build a MarkdownIt instance for the given preset name."""
    md = MarkdownIt(preset, options_update={"linkify": False})
    if tasklists:
        md.use(tasklists_plugin)
    return md


def _strip_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Return (frontmatter_dict, body) with YAML header removed."""
    m = FRONTMATTER_RE.match(text)
    if m:
        try:
            fm = yaml.safe_load(m.group(1)) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML frontmatter: {e}") from e
        if not isinstance(fm, dict):
            raise ValueError(f"Invalid YAML frontmatter: expected a mapping, got {type(fm).__name__}")
        return fm, text[m.end():]
    return {}, text


def discover_files(path: Path) -> list[Path]:
    """Return sorted .md/.mdx files under path, or [path] if a single file."""
    if path.is_file():
        return [path] if path.suffix in MD_EXTENSIONS else []
    return sorted(p for p in path.rglob('*') if p.suffix in MD_EXTENSIONS)


def parse_markdown(body: str, parser_config: str = 'gfm-like', tasklists: bool = True) -> SyntaxTreeNode:
    """Parse a markdown body (no frontmatter) into its syntax tree root."""
    return SyntaxTreeNode(make_parser(parser_config, tasklists).parse(body))


def parse_text(
    text: str,
    parser_config: str = 'gfm-like',
    tasklists: bool = True,
    path: Path = Path('<string>'),
    ) -> ParsedDoc:
    """Parse markdown text with optional frontmatter into a ParsedDoc."""
    frontmatter, body = _strip_frontmatter(text)
    slug = str(frontmatter.get('slug') or slugify(path.stem))
    return ParsedDoc(
        path=path,
        slug=slug,
        markdown=body,
        frontmatter=frontmatter,
        tree=parse_markdown(body, parser_config, tasklists),
    )


def parse_file(path: Path, parser_config: str = 'gfm-like', tasklists: bool = True) -> ParsedDoc:
    """Parse a single markdown file into a ParsedDoc with syntax tree."""
    return parse_text(path.read_text(encoding='utf-8'), parser_config, tasklists, path=path)
