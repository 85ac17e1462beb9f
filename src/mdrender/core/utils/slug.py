"""Slug generation for rendered document file names"""

import re
import unicodedata


def slugify(text: str, fallback: str = "document") -> str:
    """Convert text to a lowercase, hyphen-separated ASCII slug; empty results use fallback."""
    text = unicodedata.normalize('NFKD', text).encode('ascii', 'ignore').decode('ascii')
    text = re.sub(r'[^\w\s-]', '', text.lower())
    text = re.sub(r'[\s_]+', '-', text)
    return re.sub(r'-+', '-', text).strip('-') or fallback
