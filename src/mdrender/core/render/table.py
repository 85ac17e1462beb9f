"""Table layout: header/body extraction and row reconciliation to a fixed-width grid"""

from loguru import logger
from markdown_it.tree import SyntaxTreeNode

from mdrender.core.models import Alignment, Grid, GridCell, StyledText, TableBlock
from mdrender.core.nodes import cell_alignment, inline_child
from mdrender.core.render.inline import format_inline


def _rows(section: SyntaxTreeNode) -> list[SyntaxTreeNode]:
    return [tr for tr in section.children if tr.type == 'tr']


def _cells(row: SyntaxTreeNode) -> list[SyntaxTreeNode]:
    return [c for c in row.children if c.type in ('th', 'td')]


def _cell(node: SyntaxTreeNode, column: int, header: bool, alignment: Alignment) -> GridCell:
    return GridCell(
        text=format_inline(inline_child(node), strip=True),
        column=column,
        header=header,
        alignment=alignment,
    )


def reconcile_row(cells: list[GridCell], columns: int, alignments: list[Alignment]) -> list[GridCell]:
    """Pad with synthesized empty cells or drop extras so the row is exactly `columns` wide."""
    if len(cells) > columns:
        logger.debug(f"Dropping {len(cells) - columns} cell(s) beyond {columns} column(s)")
        return cells[:columns]
    padded = list(cells)
    for column in range(len(cells), columns):
        padded.append(GridCell(
            text=StyledText(),
            column=column,
            alignment=alignments[column] if column < len(alignments) else Alignment.left,
            synthesized=True,
        ))
    return padded


def layout_table(node: SyntaxTreeNode) -> TableBlock:
    """Resolve a markdown-it table node into a TableBlock grid.

    The header row fixes the column count and per-column alignment; every body row
    is reconciled to that width. A table without a header takes its width from the
    widest body row.
    """
    head_rows: list[SyntaxTreeNode] = []
    body_rows: list[SyntaxTreeNode] = []
    for section in node.children:
        if section.type == 'thead':
            head_rows.extend(_rows(section))
        elif section.type == 'tbody':
            body_rows.extend(_rows(section))
        elif section.type == 'tr':
            body_rows.append(section)

    header_nodes = _cells(head_rows[0]) if head_rows else []
    if header_nodes:
        alignments = [cell_alignment(c) for c in header_nodes]
    else:
        width = max((len(_cells(r)) for r in body_rows), default=0)
        alignments = [Alignment.left] * width
    columns = len(alignments)

    header = [_cell(c, i, True, alignments[i]) for i, c in enumerate(header_nodes)]
    rows = []
    for row in body_rows:
        cells = [
            _cell(c, i, False, alignments[i] if i < columns else cell_alignment(c))
            for i, c in enumerate(_cells(row))
        ]
        rows.append(reconcile_row(cells, columns, alignments))

    return TableBlock(grid=Grid(columns=columns, alignments=alignments, header=header, rows=rows))
