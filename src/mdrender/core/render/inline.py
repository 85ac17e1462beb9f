"""Inline formatter: markdown-it inline nodes to tiled styled text runs"""

from typing import Optional

from loguru import logger
from markdown_it.tree import SyntaxTreeNode

from mdrender.core.models import StyledRun, StyledText, TextStyle
from mdrender.core.nodes import inline_text, plain_text


STYLE_MAP: dict[str, TextStyle] = {
    'strong':      TextStyle.bold,
    'em':          TextStyle.italic,
    's':           TextStyle.strikethrough,
    'code_inline': TextStyle.monospace,
}


def _collect(
    node: SyntaxTreeNode,
    styles: frozenset[TextStyle],
    link: Optional[str],
    runs: list[StyledRun],
    ) -> None:
    """Append runs for node, accumulating style flags from enclosing spans."""
    if node.type == 'code_inline':
        runs.append(StyledRun(text=node.content or '', styles=styles | {TextStyle.monospace}, link=link))
    elif node.type in STYLE_MAP:
        for child in node.children:
            _collect(child, styles | {STYLE_MAP[node.type]}, link, runs)
    elif node.type == 'link':
        href = node.attrs.get('href')
        for child in node.children:
            _collect(child, styles, str(href) if href is not None else link, runs)
    elif node.type == 'image' or not node.children:
        runs.append(StyledRun(text=inline_text(node), styles=styles, link=link))
    else:
        for child in node.children:
            _collect(child, styles, link, runs)


def _merge(runs: list[StyledRun]) -> list[StyledRun]:
    """Drop empty runs and join neighbours that share the same attributes."""
    merged: list[StyledRun] = []
    for run in runs:
        if not run.text:
            continue
        if merged and merged[-1].same_style(run):
            merged[-1] = merged[-1].model_copy(update={"text": merged[-1].text + run.text})
        else:
            merged.append(run)
    return merged


def _strip(runs: list[StyledRun]) -> list[StyledRun]:
    """Trim leading whitespace of the first run and trailing whitespace of the last."""
    runs = list(runs)
    while runs and not runs[0].text.strip():
        runs.pop(0)
    while runs and not runs[-1].text.strip():
        runs.pop()
    if runs:
        runs[0] = runs[0].model_copy(update={"text": runs[0].text.lstrip()})
        runs[-1] = runs[-1].model_copy(update={"text": runs[-1].text.rstrip()})
    return runs


def format_inline(inline: Optional[SyntaxTreeNode], strip: bool = False) -> StyledText:
    """Convert an inline container into StyledText; never raises.

    Nested spans combine their flags (bold inside italic is one run with both).
    Soft breaks become spaces, hard breaks newlines, raw inline HTML is dropped.
    On any failure the whole container degrades to one unstyled run of its plain text.
    """
    if inline is None:
        return StyledText()
    try:
        runs: list[StyledRun] = []
        for child in inline.children:
            _collect(child, frozenset(), None, runs)
        runs = _merge(runs)
    except Exception as e:
        logger.warning(f"Inline formatting failed, using plain text: {e}")
        text = _safe_plain_text(inline)
        return StyledText.plain(text.strip() if strip else text)
    return StyledText(runs=_strip(runs) if strip else runs)


def _safe_plain_text(inline: SyntaxTreeNode) -> str:
    try:
        return plain_text(inline)
    except Exception:
        return getattr(inline, 'content', '') or ''
