"""Render descriptor models and intermediate parse results"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Literal, Optional, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_serializer
from markdown_it.tree import SyntaxTreeNode


# === INLINE ===


class TextStyle(str, Enum):
    bold          = "bold"
    italic        = "italic"
    strikethrough = "strikethrough"
    monospace     = "monospace"


class StyledRun(BaseModel):
    """A substring with a flat set of style flags; links carry their target."""
    model_config = ConfigDict(frozen=True)

    text:   str
    styles: frozenset[TextStyle] = frozenset()
    link:   Optional[str] = None

    @field_serializer("styles")
    def _sorted_styles(self, styles: frozenset[TextStyle]) -> list[str]:
        return sorted(s.value for s in styles)

    def same_style(self, other: "StyledRun") -> bool:
        return self.styles == other.styles and self.link == other.link


class StyledText(BaseModel):
    """Ordered runs tiling the formatted text with no gaps or overlaps."""
    model_config = ConfigDict(frozen=True)

    runs: list[StyledRun] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(r.text for r in self.runs)

    @classmethod
    def plain(cls, text: str) -> "StyledText":
        return cls(runs=[StyledRun(text=text)] if text else [])


# === CODE ===


class TokenTag(str, Enum):
    keyword = "keyword"
    type    = "type"
    builtin = "builtin"
    string  = "string"
    comment = "comment"
    number  = "number"
    symbol  = "symbol"
    key     = "key"


class CodeToken(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    tag:  Optional[TokenTag] = None     # None for untagged gaps


# === TABLE ===


class Alignment(str, Enum):
    left   = "left"
    center = "center"
    right  = "right"


class GridCell(BaseModel):
    model_config = ConfigDict(frozen=True)

    text:        StyledText
    column:      int
    header:      bool = False
    alignment:   Alignment = Alignment.left
    synthesized: bool = False           # padded in to reach the header's column count


class Grid(BaseModel):
    model_config = ConfigDict(frozen=True)

    columns:    int
    alignments: list[Alignment]
    header:     list[GridCell]
    rows:       list[list[GridCell]] = Field(default_factory=list)


# === IMAGES ===


class LoadStatus(str, Enum):
    pending = "pending"
    loaded  = "loaded"
    failed  = "failed"


class Size(BaseModel):
    model_config = ConfigDict(frozen=True)

    width:  float
    height: float


class ImageLoadState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status:       LoadStatus = LoadStatus.pending
    natural_size: Optional[Size] = None     # set only when loaded
    error:        Optional[str] = None      # set only when failed

    @classmethod
    def loaded(cls, size: Size) -> "ImageLoadState":
        return cls(status=LoadStatus.loaded, natural_size=size)

    @classmethod
    def failed(cls, error: str) -> "ImageLoadState":
        return cls(status=LoadStatus.failed, error=error)

    @property
    def settled(self) -> bool:
        return self.status != LoadStatus.pending


# === BLOCKS ===


class Checkbox(str, Enum):
    none      = "none"
    unchecked = "unchecked"
    checked   = "checked"


class HeadingBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    type:  Literal["heading"] = "heading"
    level: int = Field(ge=1, le=6)
    text:  StyledText


class ParagraphBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["paragraph"] = "paragraph"
    text: StyledText


class CodeBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    type:     Literal["code"] = "code"
    language: Optional[str] = None
    tokens:   list[CodeToken] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(t.text for t in self.tokens)


class TableBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["table"] = "table"
    grid: Grid


class ImageBlock(BaseModel):
    """An image whose load state is filled in as the fetch settles."""
    type:    Literal["image"] = "image"
    src:     str = ""
    alt:     str = ""
    title:   Optional[str] = None
    caption: Optional[str] = None
    state:   ImageLoadState = Field(default_factory=ImageLoadState)

    def settle(self, state: ImageLoadState) -> None:
        """Apply a settled load state once; later transitions are ignored."""
        if self.state.settled:
            logger.debug(f"Ignoring {state.status.value} for already {self.state.status.value} image {self.src!r}")
            return
        self.state = state

    def constrained_size(self, max_width: float, max_height: float) -> Optional[Size]:
        """Scale the natural size down (never up) to fit within max_width x max_height."""
        size = self.state.natural_size
        if size is None or size.width <= 0 or size.height <= 0:
            return None
        scale = min(1.0, max_width / size.width, max_height / size.height)
        return Size(width=size.width * scale, height=size.height * scale)


class ThematicBreakBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    type:   Literal["hr"] = "hr"
    height: int = 1


class PlaceholderBlock(BaseModel):
    """Inert plain text standing in for a node kind with no dedicated renderer."""
    model_config = ConfigDict(frozen=True)

    type:      Literal["placeholder"] = "placeholder"
    node_type: str
    text:      str = ""


class ListItemBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    type:     Literal["list_item"] = "list_item"
    number:   Optional[int] = None      # None for bullet items
    checkbox: Checkbox = Checkbox.none
    depth:    int = 0
    blocks:   list["ContentBlock"] = Field(default_factory=list)


class ListBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    type:    Literal["list"] = "list"
    ordered: bool = False
    start:   int = 1
    depth:   int = 0
    items:   list[ListItemBlock] = Field(default_factory=list)


class BlockquoteBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    type:   Literal["blockquote"] = "blockquote"
    depth:  int = 0
    blocks: list["ContentBlock"] = Field(default_factory=list)


ContentBlock = Annotated[
    Union[
        HeadingBlock,
        ParagraphBlock,
        ListBlock,
        ListItemBlock,
        BlockquoteBlock,
        CodeBlock,
        TableBlock,
        ImageBlock,
        ThematicBreakBlock,
        PlaceholderBlock,
    ],
    Field(discriminator="type"),
]

ListItemBlock.model_rebuild()
BlockquoteBlock.model_rebuild()


class RenderedDocument(BaseModel):
    """Public output contract: one rendered markdown file."""
    version:     str = "1.0"
    slug:        str
    path:        str
    frontmatter: dict[str, Any] = {}
    blocks:      list[ContentBlock]


@dataclass
class ParsedDoc:
    """Internal parse result carrying the markdown-it syntax tree; not serialized."""
    path:        Path
    slug:        str
    markdown:    str                # body only (frontmatter stripped)
    frontmatter: dict[str, Any]
    tree:        SyntaxTreeNode
