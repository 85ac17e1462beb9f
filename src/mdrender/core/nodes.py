"""Closed classification of markdown-it syntax tree nodes and plain-text helpers"""

import re
import textwrap
from enum import Enum
from typing import Optional

from markdown_it.tree import SyntaxTreeNode

from mdrender.core.models import Alignment, Checkbox


class NodeKind(str, Enum):
    heading        = "heading"
    paragraph      = "paragraph"
    bullet_list    = "bullet_list"
    ordered_list   = "ordered_list"
    list_item      = "list_item"
    blockquote     = "blockquote"
    code_block     = "code_block"
    table          = "table"
    image          = "image"
    thematic_break = "thematic_break"
    unrecognized   = "unrecognized"


NODE_KIND_MAP: dict[str, NodeKind] = {
    'heading':      NodeKind.heading,
    'paragraph':    NodeKind.paragraph,
    'bullet_list':  NodeKind.bullet_list,
    'ordered_list': NodeKind.ordered_list,
    'list_item':    NodeKind.list_item,
    'blockquote':   NodeKind.blockquote,
    'fence':        NodeKind.code_block,
    'code_block':   NodeKind.code_block,
    'table':        NodeKind.table,
    'image':        NodeKind.image,
    'hr':           NodeKind.thematic_break,
}

LIST_KINDS = (NodeKind.bullet_list, NodeKind.ordered_list)

_ALIGN_RE = re.compile(r'text-align\s*:\s*(left|center|right)')
_CHECKBOX_MARKER = 'task-list-item-checkbox'


def node_kind(node: SyntaxTreeNode) -> NodeKind:
    """Map a syntax tree node onto NodeKind; unknown types are unrecognized."""
    return NODE_KIND_MAP.get(node.type, NodeKind.unrecognized)


def heading_level(node: SyntaxTreeNode) -> Optional[int]:
    """Return the heading level from an hN tag, else None."""
    tag = node.tag or ''
    if tag[:1] == 'h' and tag[1:].isdigit():
        return int(tag[1:])
    return None


def inline_child(node: SyntaxTreeNode) -> Optional[SyntaxTreeNode]:
    """Return the inline container of a heading, paragraph, or table cell."""
    for child in node.children:
        if child.type == 'inline':
            return child
    return None


def list_start(node: SyntaxTreeNode) -> int:
    """Return the declared start number of an ordered list (markdown-it omits 1)."""
    try:
        return int(node.attrs.get('start', 1))
    except (TypeError, ValueError):
        return 1


def cell_alignment(node: SyntaxTreeNode) -> Alignment:
    """Read a th/td text-align style; default left."""
    m = _ALIGN_RE.search(str(node.attrs.get('style', '')))
    return Alignment(m.group(1)) if m else Alignment.left


def checkbox_state(item: SyntaxTreeNode) -> Checkbox:
    """Read the task-list checkbox marker from a list item's first paragraph."""
    paragraph = item.children[0] if item.children else None
    if paragraph is None or paragraph.type != 'paragraph':
        return Checkbox.none
    inline = inline_child(paragraph)
    if inline is None or not inline.children:
        return Checkbox.none
    first = inline.children[0]
    if first.type != 'html_inline' or _CHECKBOX_MARKER not in (first.content or ''):
        return Checkbox.none
    return Checkbox.checked if 'checked="checked"' in first.content else Checkbox.unchecked


def inline_text(node: SyntaxTreeNode) -> str:
    """Flatten one inline node to the plain text the formatter tiles."""
    if node.type in ('text', 'code_inline'):
        return node.content or ''
    if node.type == 'softbreak':
        return ' '
    if node.type == 'hardbreak':
        return '\n'
    if node.type == 'html_inline':
        return ''
    if node.type == 'image':
        return node.content or ''
    if node.children:
        return ''.join(inline_text(c) for c in node.children)
    return node.content or ''


def plain_text(node: Optional[SyntaxTreeNode]) -> str:
    """Flatten any node (block or inline) to plain text, blocks separated by newlines."""
    if node is None:
        return ''
    if node.type == 'inline':
        return ''.join(inline_text(c) for c in node.children)
    if not node.is_root and node.type in ('fence', 'code_block', 'html_block'):
        return (node.content or '').rstrip('\n')
    if not node.children:
        return inline_text(node) if not node.is_root else ''
    parts = [plain_text(c) for c in node.children]
    return '\n'.join(p for p in parts if p)


def source_text(node: SyntaxTreeNode, source_lines: list[str]) -> str:
    """Extract raw source for a block via node.map; fallback to flattened plain text."""
    if source_lines and not node.is_root and node.map:
        start, end = node.map
        text = textwrap.dedent(''.join(source_lines[start:end])).rstrip()
        if text:
            return text
    return plain_text(node)
