"""Shared fixtures for core unit tests"""

import pytest

from mdrender.core.parse import parse_markdown


SAMPLE_MD = """\
# Heading 1

A paragraph with **bold** text.

## Heading 2

- item one
- item two

```python
print("hello")
```

---

| A | B |
|---|---|
| 1 | 2 |

<div>raw html</div>

Footer paragraph.
"""

SAMPLE_FM_MD = """\
---
title: Test Doc
slug: test-doc
tags: [a, b]
---

# Title

Body content.
"""


@pytest.fixture(name="sample_tree")
def sample_tree_fixture():
    return parse_markdown(SAMPLE_MD)


@pytest.fixture(name="sample_lines")
def sample_lines_fixture():
    return SAMPLE_MD.splitlines(keepends=True)


@pytest.fixture(name="inline_of")
def inline_of_fixture():
    """Return the inline node of the first paragraph in a markdown snippet."""
    def _inline_of(text: str):
        tree = parse_markdown(text)
        paragraph = tree.children[0]
        return paragraph.children[0]
    return _inline_of


@pytest.fixture(name="sample_md")
def sample_md_fixture():
    return SAMPLE_MD


@pytest.fixture(name="sample_fm_md")
def sample_fm_md_fixture():
    return SAMPLE_FM_MD
