"""
Lexer

Splits JavaScript source into coarse tokens (whitespace, comments, string,
template and regular expression literals, identifiers, numbers, punctuation)
so that later stages never mistake text inside a literal or comment for code.

The grammar lives in tokens.lark; only Lark's basic lexer is used. Whether a
`/` opens a regular expression or divides depends on the token before it, so
regular expression literals are recognized here, after Lark has lexed, and
the rest of the source is lexed again from the end of the literal.
"""

import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Iterator, List, Optional

from lark import Lark, Token

logger = logging.getLogger(__name__)

GRAMMAR_PATH = Path(__file__).parent / "tokens.lark"

WS = "WS"
LINE_COMMENT = "LINE_COMMENT"
BLOCK_COMMENT = "BLOCK_COMMENT"
STRING = "STRING"
TEMPLATE = "TEMPLATE"
IDENT = "IDENT"
NUMBER = "NUMBER"
PUNCT = "PUNCT"
OTHER = "OTHER"
REGEX = "REGEX"

COMMENT_TYPES = frozenset({LINE_COMMENT, BLOCK_COMMENT})
TRIVIA_TYPES = frozenset({WS, LINE_COMMENT, BLOCK_COMMENT})
UNTERMINATED_OPENERS = frozenset({'"', "'", "`"})

OPENING = {"{": "}", "(": ")", "[": "]"}
CLOSING = {v: k for k, v in OPENING.items()}

IDENTIFIER_RE = re.compile(r"[A-Za-z_$\u0080-\uffff][A-Za-z0-9_$\u0080-\uffff]*")

# Body characters, escapes and [...] classes (where `/` needs no escape), then flags
REGEX_RE = re.compile(
    r"/(?![*/])(?:[^\\/\[\n\r]|\\[^\n\r]|\[(?:[^\]\\\n\r]|\\[^\n\r])*\])+/[A-Za-z0-9_$]*"
)

# A `/` after one of these starts an expression, so it opens a regular expression
_REGEX_AFTER_PUNCT = frozenset((
    "(", ",", "=", ":", "[", "!", "&", "|", "?", "{", "}", ";", "=>", "...",
    "+", "-", "*", "/", "%", "<", ">", "~", "^",
))
_REGEX_AFTER_KEYWORDS = frozenset((
    "return", "typeof", "instanceof", "in", "of", "new", "delete", "void",
    "throw", "case", "do", "else", "yield", "await",
))


@lru_cache(maxsize=1)
def _build_lark() -> Lark:
    """Compile the token grammar once per process (it is immutable)."""
    logger.debug(f"Compiling token grammar {GRAMMAR_PATH}")
    return Lark.open(
        str(GRAMMAR_PATH),
        start="start",
        parser="lalr",
        lexer="basic",
    )


class Lexer:
    """
    JavaScript tokenizer.

    Tokens are lark Token objects: `type` is one of the terminal names above,
    `start_pos`/`end_pos` are character offsets and `line`/`column` are 1-based.
    Every character of the input belongs to exactly one token, so joining the
    token values reproduces the source.
    """

    def __init__(self):
        self._lark = _build_lark()

    def tokenize(self, source: str) -> List[Token]:
        tokens: List[Token] = []
        previous: Optional[Token] = None
        offset, line, column = 0, 1, 1
        while True:
            for token in self._lex(source, offset, line, column):
                if is_punct(token, "/") and regex_allowed_after(previous):
                    match = REGEX_RE.match(source, token.start_pos)
                    if match is not None:
                        regex = Token(
                            REGEX,
                            match.group(),
                            start_pos=token.start_pos,
                            line=token.line,
                            column=token.column,
                            end_line=token.line,
                            end_column=token.column + len(match.group()),
                            end_pos=match.end(),
                        )
                        tokens.append(regex)
                        previous = regex
                        offset, line, column = regex.end_pos, regex.end_line, regex.end_column
                        break
                tokens.append(token)
                if token.type not in TRIVIA_TYPES:
                    previous = token
            else:
                return tokens

    def significant(self, source: str) -> List[Token]:
        """Tokens without whitespace and comments."""
        return [t for t in self.tokenize(source) if t.type not in TRIVIA_TYPES]

    def _lex(self, source: str, offset: int, line: int, column: int) -> Iterator[Token]:
        """Lex `source[offset:]`, reporting positions relative to the whole source."""
        if offset == 0:
            yield from self._lark.lex(source)
            return
        shift = column - 1
        for token in self._lark.lex(source[offset:]):
            yield Token(
                token.type,
                token.value,
                start_pos=token.start_pos + offset,
                line=token.line + line - 1,
                column=token.column + (shift if token.line == 1 else 0),
                end_line=token.end_line + line - 1,
                end_column=token.end_column + (shift if token.end_line == 1 else 0),
                end_pos=token.end_pos + offset,
            )


def regex_allowed_after(token: Optional[Token]) -> bool:
    """Can an expression (and so a regular expression literal) start after `token`?"""
    if token is None:
        return True
    if token.type == PUNCT:
        return token.value in _REGEX_AFTER_PUNCT
    return token.type == IDENT and token.value in _REGEX_AFTER_KEYWORDS


def is_punct(token: Optional[Token], value: str) -> bool:
    return token is not None and token.type == PUNCT and token.value == value


def is_ident(token: Optional[Token], value: Optional[str] = None) -> bool:
    if token is None or token.type != IDENT:
        return False
    return value is None or token.value == value


def is_identifier_name(name: str) -> bool:
    return IDENTIFIER_RE.fullmatch(name) is not None


def contains_newline(token: Token) -> bool:
    return "\n" in token.value or "\r" in token.value
