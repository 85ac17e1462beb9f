"""Code highlighter: single-pass regex tokenizer over per-language rule lists"""

import re
from dataclasses import dataclass, field
from typing import NamedTuple, Optional

from loguru import logger

from mdrender.core.models import CodeToken, TokenTag


class Rule(NamedTuple):
    pattern: re.Pattern
    tag:     TokenTag


@dataclass(frozen=True)
class Language:
    name:    str
    aliases: tuple[str, ...] = ()
    rules:   tuple[Rule, ...] = field(default=(), repr=False)


def _words(words: list[str], tag: TokenTag) -> Rule:
    """Whole-word alternation; longest first so prefixes never shadow longer words."""
    alternation = '|'.join(re.escape(w) for w in sorted(set(words), key=len, reverse=True))
    return Rule(re.compile(rf'(?<![\w@$])(?:{alternation})(?![\w])'), tag)


def _rule(pattern: str, tag: TokenTag, flags: int = 0) -> Rule:
    return Rule(re.compile(pattern, flags), tag)


DOUBLE_QUOTED = _rule(r'"(?:[^"\\\n]|\\.)*"', TokenTag.string)
SINGLE_QUOTED = _rule(r"'(?:[^'\\\n]|\\.)*'", TokenTag.string)
SLASH_COMMENT = _rule(r'//[^\n]*', TokenTag.comment)
BLOCK_COMMENT = _rule(r'/\*[\s\S]*?\*/', TokenTag.comment)
HASH_COMMENT  = _rule(r'#[^\n]*', TokenTag.comment)
NUMBER        = _rule(r'\b\d+(?:\.\d+)?\b', TokenTag.number)


SWIFT = Language("swift", rules=(
    _words(["func", "var", "let", "class", "struct", "enum", "protocol", "extension",
            "if", "else", "for", "while", "switch", "case", "default", "return",
            "import", "private", "public", "internal", "static", "final", "override",
            "init", "self", "Self", "@State", "@Binding", "@Published", "@ObservedObject",
            "some", "any", "nil", "true", "false"], TokenTag.keyword),
    _words(["String", "Int", "Double", "Float", "Bool", "Array", "Dictionary", "Set",
            "View", "Text", "VStack", "HStack", "ZStack", "Button", "Image", "Color"], TokenTag.type),
    _rule(r'"""[\s\S]*?"""', TokenTag.string),
    DOUBLE_QUOTED,
    SLASH_COMMENT,
    BLOCK_COMMENT,
    NUMBER,
))

PYTHON = Language("python", aliases=("py",), rules=(
    _words(["def", "class", "if", "else", "elif", "for", "while", "try", "except",
            "finally", "with", "as", "import", "from", "return", "yield", "lambda",
            "and", "or", "not", "in", "is", "None", "True", "False", "self"], TokenTag.keyword),
    _words(["print", "len", "range", "str", "int", "float", "list", "dict", "set",
            "tuple", "bool", "type", "isinstance", "enumerate", "zip", "map", "filter"], TokenTag.builtin),
    _rule(r'"""[\s\S]*?"""', TokenTag.string),
    _rule(r"'''[\s\S]*?'''", TokenTag.string),
    DOUBLE_QUOTED,
    SINGLE_QUOTED,
    HASH_COMMENT,
    NUMBER,
))

JAVASCRIPT = Language("javascript", aliases=("js", "jsx"), rules=(
    _words(["function", "var", "let", "const", "class", "extends", "if", "else",
            "for", "while", "do", "switch", "case", "default", "return", "async",
            "await", "try", "catch", "finally", "throw", "new", "this", "super",
            "import", "export", "from", "null", "undefined", "true", "false"], TokenTag.keyword),
    DOUBLE_QUOTED,
    SINGLE_QUOTED,
    _rule(r'`(?:[^`\\]|\\.)*`', TokenTag.string),
    SLASH_COMMENT,
    BLOCK_COMMENT,
    NUMBER,
))

JAVA = Language("java", rules=(
    _words(["public", "private", "protected", "class", "interface", "extends", "implements",
            "static", "final", "void", "int", "double", "float", "boolean", "char", "long",
            "if", "else", "for", "while", "do", "switch", "case", "default", "return",
            "try", "catch", "finally", "throw", "throws", "new", "this", "super", "import",
            "package", "null", "true", "false"], TokenTag.keyword),
    DOUBLE_QUOTED,
    SLASH_COMMENT,
    BLOCK_COMMENT,
    _rule(r'\b\d+(?:\.\d+)?[fFlL]?\b', TokenTag.number),
))

RUBY = Language("ruby", aliases=("rb",), rules=(
    _words(["def", "class", "module", "if", "else", "elsif", "unless", "for", "while",
            "do", "case", "when", "return", "yield", "begin", "rescue", "ensure", "end",
            "and", "or", "not", "in", "self", "super", "nil", "true", "false", "require",
            "include", "extend", "attr_reader", "attr_writer", "attr_accessor"], TokenTag.keyword),
    DOUBLE_QUOTED,
    SINGLE_QUOTED,
    _rule(r'(?<![\w:]):[a-zA-Z_]\w*', TokenTag.symbol),
    HASH_COMMENT,
    NUMBER,
))

JSON = Language("json", rules=(
    _rule(r'"(?:[^"\\\n]|\\.)+"(?=\s*:)', TokenTag.key),
    DOUBLE_QUOTED,
    _words(["true", "false", "null"], TokenTag.keyword),
    _rule(r'-?\b\d+(?:\.\d+)?(?:[eE][+-]?\d+)?\b', TokenTag.number),
))

LANGUAGES: tuple[Language, ...] = (SWIFT, PYTHON, JAVASCRIPT, JAVA, RUBY, JSON)

_BY_TAG: dict[str, Language] = {
    tag: lang for lang in LANGUAGES for tag in (lang.name, *lang.aliases)
}


def normalize_language(info: Optional[str]) -> Optional[str]:
    """Lowercased first word of a fence info string, or None when blank."""
    if not info or not info.strip():
        return None
    return info.strip().split()[0].lower()


def resolve_language(tag: Optional[str]) -> Optional[Language]:
    """Look up a supported language by name or alias (case-insensitive)."""
    if not isinstance(tag, str):
        return None
    return _BY_TAG.get(tag.strip().lower())


def _tokenize(code: str, rules: tuple[Rule, ...]) -> list[CodeToken]:
    """Scan left to right; at each step commit the earliest match, ties to the earlier rule."""
    tokens: list[CodeToken] = []
    # Next known match per rule; recomputed only once the scan moves past its start.
    pending: list[Optional[re.Match]] = [r.pattern.search(code) for r in rules]
    pos = 0
    while pos < len(code):
        best: Optional[re.Match] = None
        best_rule = -1
        for i, rule in enumerate(rules):
            m = pending[i]
            while m is not None and (m.start() < pos or m.end() == m.start()):
                m = rule.pattern.search(code, max(pos, m.start() + 1) if m.end() == m.start() else pos)
            pending[i] = m
            if m is not None and (best is None or m.start() < best.start()):
                best, best_rule = m, i
        if best is None:
            break
        if best.start() > pos:
            tokens.append(CodeToken(text=code[pos:best.start()]))
        tokens.append(CodeToken(text=best.group(0), tag=rules[best_rule].tag))
        pos = best.end()
    if pos < len(code):
        tokens.append(CodeToken(text=code[pos:]))
    return tokens


def highlight(code: str, language: Optional[str]) -> list[CodeToken]:
    """Split code into tagged tokens whose concatenation is exactly code.

    Unknown or absent languages produce one untagged token. Never raises.
    """
    if not code:
        return []
    lang = resolve_language(language)
    if lang is None:
        if language:
            logger.debug(f"No highlighting rules for language {language!r}")
        return [CodeToken(text=code)]
    try:
        return _tokenize(code, lang.rules)
    except Exception as e:
        logger.warning(f"Highlighting failed for {lang.name}, emitting plain text: {e}")
        return [CodeToken(text=code)]


def supported_languages() -> list[Language]:
    return list(LANGUAGES)
