"""Integration tests for the parse -> render -> write pipeline.

Each test renders the canonical document below and asserts stable expected
values. Read this file top-to-bottom as a reference for what the renderer
produces with default settings.

Canonical document (pipeline-test.md)
--------------------------------------
    ---
    title: Pipeline Test
    date: 2026-01-15
    ---

    # Introduction

    An **introductory** paragraph.

    1. First
    2. Second
       - nested

    | Name | Qty |
    |:-----|----:|
    | apple | 3 |
    | pear |

    ```json
    {"ok": true}
    ```

    > Quoted text.

    ---

Block layout after render (top level):
    [heading 1]   "Introduction"
    [paragraph]   "An introductory paragraph."  (runs: plain, bold, plain)
    [list]        ordered, depth 0, items numbered 1 and 2; item 2 holds a depth-1 bullet list
    [table]       2 columns (left, right); second body row padded to 2 cells
    [code]        json, tokens key / keyword
    [blockquote]  depth 0, one paragraph
    [hr]
"""

import json

import pytest

from mdrender.config import Settings
from mdrender.core.models import TextStyle, TokenTag
from mdrender.core.pipeline import render_file, run_render


CANONICAL_MD = """\
---
title: Pipeline Test
date: 2026-01-15
---

# Introduction

An **introductory** paragraph.

1. First
2. Second
   - nested

| Name | Qty |
|:-----|----:|
| apple | 3 |
| pear |

```json
{"ok": true}
```

> Quoted text.

---
"""


@pytest.fixture(name="doc_path")
def doc_path_fixture(tmp_path):
    p = tmp_path / "pipeline-test.md"
    p.write_text(CANONICAL_MD)
    return p


@pytest.fixture(name="rendered")
def rendered_fixture(doc_path):
    return render_file(doc_path, Settings())


def test_block_types(rendered):
    assert [b.type for b in rendered.blocks] == [
        "heading", "paragraph", "list", "table", "code", "blockquote", "hr",
    ]


def test_document_identity(rendered):
    assert rendered.slug == "pipeline-test"
    assert rendered.frontmatter["title"] == "Pipeline Test"


def test_paragraph_runs(rendered):
    runs = rendered.blocks[1].text.runs
    assert [r.text for r in runs] == ["An ", "introductory", " paragraph."]
    assert runs[1].styles == {TextStyle.bold}


def test_list_structure(rendered):
    block = rendered.blocks[2]
    assert block.ordered and block.depth == 0
    assert [i.number for i in block.items] == [1, 2]
    nested = block.items[1].blocks[1]
    assert nested.type == "list"
    assert nested.depth == 1
    assert nested.items[0].blocks[0].text.text == "nested"


def test_table_grid(rendered):
    grid = rendered.blocks[3].grid
    assert grid.columns == 2
    assert [a.value for a in grid.alignments] == ["left", "right"]
    assert [[c.text.text for c in row] for row in grid.rows] == [["apple", "3"], ["pear", ""]]


def test_code_tokens(rendered):
    code = rendered.blocks[4]
    assert code.language == "json"
    assert code.text == '{"ok": true}'
    tags = {t.text: t.tag for t in code.tokens if t.tag}
    assert tags == {'"ok"': TokenTag.key, "true": TokenTag.keyword}


def test_blockquote(rendered):
    quote = rendered.blocks[5]
    assert quote.depth == 0
    assert quote.blocks[0].text.text == "Quoted text."


def test_json_output_matches_render(doc_path, tmp_path):
    """run_render writes the same document that render_file returns."""
    results = run_render(str(doc_path), Settings(), tmp_path / "dist")
    assert len(results) == 1
    src, out_file = results[0]
    assert src == doc_path
    assert out_file == tmp_path / "dist" / "pipeline-test.json"
    data = json.loads(out_file.read_text())
    assert data["frontmatter"]["date"] == "2026-01-15"
    assert data["blocks"][1]["text"]["runs"][1] == {"text": "introductory", "styles": ["bold"], "link": None}
