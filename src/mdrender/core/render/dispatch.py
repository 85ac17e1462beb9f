"""Block dispatcher: walk the syntax tree and emit render descriptors in source order"""

from collections.abc import Callable, Sequence
from typing import Optional

from loguru import logger
from markdown_it.tree import SyntaxTreeNode

from mdrender.core.models import (
    BlockquoteBlock,
    CodeBlock,
    ContentBlock,
    HeadingBlock,
    ImageBlock,
    ListBlock,
    ListItemBlock,
    ParagraphBlock,
    PlaceholderBlock,
    ThematicBreakBlock,
)
from mdrender.core.nodes import (
    LIST_KINDS,
    NodeKind,
    checkbox_state,
    heading_level,
    inline_child,
    list_start,
    node_kind,
    source_text,
)
from mdrender.core.render.highlight import highlight, normalize_language
from mdrender.core.render.images import ImageResolver
from mdrender.core.render.inline import format_inline
from mdrender.core.render.table import layout_table


SMALLEST_HEADING_TIER = 6


class BlockDispatcher:
    """Render a sequence of block nodes into descriptors.

    Pure apart from image resolution: the same tree always yields an equal
    descriptor tree. Depth is passed explicitly on every recursive call.
    """

    def __init__(
        self,
        source: str = "",
        resolver: Optional[ImageResolver] = None,
        honor_list_start: bool = True,
        ):
        self.source_lines = source.splitlines(keepends=True)
        self.resolver = resolver or ImageResolver()
        self.honor_list_start = honor_list_start
        self._handlers: dict[NodeKind, Callable[[SyntaxTreeNode, int], list[ContentBlock]]] = {
            NodeKind.heading:        self._render_heading,
            NodeKind.paragraph:      self._render_paragraph,
            NodeKind.bullet_list:    self._render_list,
            NodeKind.ordered_list:   self._render_list,
            NodeKind.list_item:      self._render_stray_item,
            NodeKind.blockquote:     self._render_blockquote,
            NodeKind.code_block:     self._render_code,
            NodeKind.table:          self._render_table,
            NodeKind.image:          self._render_image_node,
            NodeKind.thematic_break: self._render_hr,
            NodeKind.unrecognized:   self._render_placeholder,
        }

    def render(self, nodes: Sequence[SyntaxTreeNode], depth: int = 0) -> list[ContentBlock]:
        """Render nodes in order; a node that fails becomes a placeholder."""
        blocks: list[ContentBlock] = []
        for node in nodes:
            blocks.extend(self.render_node(node, depth))
        return blocks

    def render_node(self, node: SyntaxTreeNode, depth: int = 0) -> list[ContentBlock]:
        kind = node_kind(node)
        try:
            return self._handlers[kind](node, depth)
        except Exception as e:
            logger.warning(f"Failed to render {node.type} node, using placeholder: {e}")
            return self._render_placeholder(node, depth)

    # --- blocks ---

    def _render_heading(self, node: SyntaxTreeNode, depth: int) -> list[ContentBlock]:
        level = heading_level(node)
        if level is None or not 1 <= level <= 6:
            level = SMALLEST_HEADING_TIER
        return [HeadingBlock(level=level, text=format_inline(inline_child(node)))]

    def _render_paragraph(self, node: SyntaxTreeNode, depth: int, strip: bool = False) -> list[ContentBlock]:
        inline = inline_child(node)
        images = _standalone_images(inline)
        if images:
            return [self._image_block(img) for img in images]
        return [ParagraphBlock(text=format_inline(inline, strip=strip))]

    def _render_list(self, node: SyntaxTreeNode, depth: int) -> list[ContentBlock]:
        ordered = node_kind(node) == NodeKind.ordered_list
        start = list_start(node) if ordered else 1
        first = start if self.honor_list_start else 1
        items = [
            self._render_item(item, depth, first + index if ordered else None)
            for index, item in enumerate(c for c in node.children if c.type == 'list_item')
        ]
        return [ListBlock(ordered=ordered, start=start, depth=depth, items=items)]

    def _render_item(self, item: SyntaxTreeNode, depth: int, number: Optional[int]) -> ListItemBlock:
        blocks: list[ContentBlock] = []
        for child in item.children:
            blocks.extend(self._render_item_block(child, depth))
        return ListItemBlock(number=number, checkbox=checkbox_state(item), depth=depth, blocks=blocks)

    def _render_item_block(self, node: SyntaxTreeNode, depth: int) -> list[ContentBlock]:
        """List items hold trimmed paragraphs, nested lists, and code; anything else is source text."""
        kind = node_kind(node)
        try:
            if kind == NodeKind.paragraph:
                return self._render_paragraph(node, depth, strip=True)
            if kind in LIST_KINDS:
                return self._render_list(node, depth + 1)
            if kind == NodeKind.code_block:
                return self._render_code(node, depth)
        except Exception as e:
            logger.warning(f"Failed to render {node.type} in list item, using placeholder: {e}")
        return self._render_placeholder(node, depth)

    def _render_stray_item(self, node: SyntaxTreeNode, depth: int) -> list[ContentBlock]:
        return [self._render_item(node, depth, None)]

    def _render_blockquote(self, node: SyntaxTreeNode, depth: int) -> list[ContentBlock]:
        return [BlockquoteBlock(depth=depth, blocks=self.render(node.children, depth))]

    def _render_code(self, node: SyntaxTreeNode, depth: int) -> list[ContentBlock]:
        language = normalize_language(node.info) if node.type == 'fence' else None
        code = node.content or ''
        if code.endswith('\n'):
            code = code[:-1]
        return [CodeBlock(language=language, tokens=highlight(code, language))]

    def _render_table(self, node: SyntaxTreeNode, depth: int) -> list[ContentBlock]:
        return [layout_table(node)]

    def _render_image_node(self, node: SyntaxTreeNode, depth: int) -> list[ContentBlock]:
        return [self._image_block(node)]

    def _render_hr(self, node: SyntaxTreeNode, depth: int) -> list[ContentBlock]:
        return [ThematicBreakBlock()]

    def _render_placeholder(self, node: SyntaxTreeNode, depth: int) -> list[ContentBlock]:
        try:
            text = source_text(node, self.source_lines)
        except Exception as e:
            logger.debug(f"No source text for {node.type}: {e}")
            text = ''
        return [PlaceholderBlock(node_type=node.type, text=text)]

    # --- images ---

    def _image_block(self, node: SyntaxTreeNode) -> ImageBlock:
        """Create an ImageBlock and subscribe it to its own resolution request."""
        src = str(node.attrs.get('src', '') or '')
        title = node.attrs.get('title')
        alt = node.content or ''
        block = ImageBlock(
            src=src,
            alt=alt,
            title=str(title) if title else None,
            caption=str(title) if title else (alt or None),
        )
        request = self.resolver.resolve(src)
        request.subscribe(block.settle)
        return block


def _standalone_images(inline: Optional[SyntaxTreeNode]) -> list[SyntaxTreeNode]:
    """Return the images of an inline run made only of images and whitespace, else []."""
    if inline is None or not inline.children:
        return []
    images = []
    for c in inline.children:
        if c.type in ('softbreak', 'hardbreak'):
            continue
        if c.type == 'text' and not (c.content or '').strip():
            continue
        if c.type != 'image':
            return []
        images.append(c)
    return images


def render_tree(
    tree: SyntaxTreeNode,
    source: str = "",
    resolver: Optional[ImageResolver] = None,
    honor_list_start: bool = True,
    ) -> list[ContentBlock]:
    """Render a parsed document's top-level children at depth 0."""
    dispatcher = BlockDispatcher(source=source, resolver=resolver, honor_list_start=honor_list_start)
    return dispatcher.render(tree.children, depth=0)
