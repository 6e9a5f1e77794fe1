"""
Minifier

Token-aware whitespace and comment stripping. Because it works on tokens,
string and template literals pass through byte for byte and text that only
looks like code inside them (`"console.log"`) is never touched.

- comments dropped, except the userscript header block and `/*! ... */`
- runs of whitespace collapse to one newline when they contained a line
  break (automatic semicolon insertion keeps working) and to nothing or a
  single space otherwise
- optionally removes `console.<method>(...)` calls
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from lark import Token

from ..frontend.lexer import (
    BLOCK_COMMENT,
    CLOSING,
    IDENT,
    LINE_COMMENT,
    NUMBER,
    OPENING,
    OTHER,
    PUNCT,
    REGEX,
    TRIVIA_TYPES,
    WS,
    Lexer,
    contains_newline,
    is_ident,
    is_punct,
)
from ..utils.config import DEFAULT_DROP_CONSOLE_METHODS, METADATA_END, METADATA_START

logger = logging.getLogger(__name__)

_WORD_TYPES = frozenset({IDENT, NUMBER, OTHER})
_STATEMENT_BOUNDARY = frozenset({";", "{", "}"})
# A call followed by one of these is part of a larger expression; leave it alone
_CHAINED = frozenset({".", "?.", "(", "["})
# `a + +b` and `a - -b` must not become `a++b` / `a--b`; `/` `/` would open a comment
_NEEDS_SEPARATION = {"+": "+", "-": "-", "/": "/*"}

VOID_EXPRESSION = "void 0"


class Minifier:
    def __init__(
        self,
        drop_console: bool = False,
        console_methods: Sequence[str] = DEFAULT_DROP_CONSOLE_METHODS,
        lexer: Optional[Lexer] = None,
    ):
        self.drop_console = drop_console
        self.console_methods = frozenset(console_methods)
        self.lexer = lexer or Lexer()
        self.removed_calls = 0

    def minify(self, code: str) -> str:
        tokens = self.lexer.tokenize(code)
        removals = self._console_calls(tokens) if self.drop_console else {}
        self.removed_calls = len(removals)

        out: List[str] = []
        last: Optional[Tuple[str, str]] = None  # (type, value) of the last emitted token
        pending_newline = False
        pending_space = False
        in_header = False

        def emit(text: str, first: Tuple[str, str], final: Tuple[str, str]) -> None:
            nonlocal last, pending_newline, pending_space
            if out:
                if pending_newline and not out[-1].endswith("\n"):
                    out.append("\n")
                elif (pending_space or pending_newline) and last is not None and _fuses(last, first):
                    out.append(" ")
            out.append(text)
            last = final
            pending_newline = pending_space = False

        i = 0
        while i < len(tokens):
            token = tokens[i]

            if i in removals:
                end, replacement = removals[i]
                if replacement:
                    emit(replacement, (IDENT, "void"), (NUMBER, "0"))
                i = end
                continue

            if token.type == WS:
                if contains_newline(token):
                    pending_newline = True
                else:
                    pending_space = True
            elif token.type == LINE_COMMENT:
                marker = token.value.strip()
                if marker == METADATA_START:
                    in_header = True
                if in_header:
                    emit(token.value, (LINE_COMMENT, ""), (LINE_COMMENT, ""))
                    pending_newline = True
                if marker == METADATA_END:
                    in_header = False
            elif token.type == BLOCK_COMMENT:
                if token.value.startswith("/*!"):
                    emit(token.value, (BLOCK_COMMENT, ""), (BLOCK_COMMENT, ""))
                elif contains_newline(token):
                    pending_newline = True
                else:
                    pending_space = True
            else:
                emit(token.value, (token.type, token.value), (token.type, token.value))
            i += 1

        result = "".join(out)
        if result and not result.endswith("\n"):
            result += "\n"
        if self.removed_calls:
            logger.info(f"Removed {self.removed_calls} console call(s)")
        logger.debug(f"Minified {len(code)} -> {len(result)} characters")
        return result

    def _console_calls(self, tokens: List[Token]) -> Dict[int, Tuple[int, str]]:
        """
        Map start index -> (index after the removed run, replacement text) for
        every removable `console.<method>(...)` call.
        """
        significant = [i for i, t in enumerate(tokens) if t.type not in TRIVIA_TYPES]
        removals: Dict[int, Tuple[int, str]] = {}
        k = 0
        while k + 3 < len(significant):
            first = tokens[significant[k]]
            prev = tokens[significant[k - 1]] if k > 0 else None
            if not (is_ident(first, "console")
                    and not (is_punct(prev, ".") or is_punct(prev, "?."))
                    and is_punct(tokens[significant[k + 1]], ".")
                    and tokens[significant[k + 2]].type == IDENT
                    and tokens[significant[k + 2]].value in self.console_methods
                    and is_punct(tokens[significant[k + 3]], "(")):
                k += 1
                continue

            close = _matching_close(tokens, significant, k + 3)
            if close is None:
                k += 1
                continue
            after = tokens[significant[close + 1]] if close + 1 < len(significant) else None
            if after is not None and after.type == PUNCT and after.value in _CHAINED:
                k = close + 1
                continue

            statement = prev is None or (prev.type == PUNCT and prev.value in _STATEMENT_BOUNDARY)
            end = close
            if statement and is_punct(after, ";"):
                end = close + 1
            if statement and (after is None or is_punct(after, ";") or is_punct(after, "}")
                              or after.line > tokens[significant[close]].end_line):
                removals[significant[k]] = (significant[end] + 1, "")
            else:
                removals[significant[k]] = (significant[close] + 1, VOID_EXPRESSION)
            k = end + 1
        return removals


def _matching_close(tokens: List[Token], significant: List[int], open_k: int) -> Optional[int]:
    depth = 0
    for k in range(open_k, len(significant)):
        token = tokens[significant[k]]
        if token.type != PUNCT:
            continue
        if token.value in OPENING:
            depth += 1
        elif token.value in CLOSING:
            depth -= 1
            if depth == 0:
                return k if token.value == ")" else None
    return None


def _fuses(left: Tuple[str, str], right: Tuple[str, str]) -> bool:
    """Would `left` and `right` read as one token without a space between?"""
    left_type, left_value = left
    right_type, right_value = right
    if left_type in _WORD_TYPES and right_type in _WORD_TYPES:
        return True
    if left_type == NUMBER and right_type == PUNCT and right_value.startswith("."):
        return True
    # `/a/ in b` would read `in` as flags, `a / /b/` would open a comment
    if left_type == REGEX and right_type in _WORD_TYPES:
        return True
    if left_type == PUNCT and left_value.endswith("/") and right_type == REGEX:
        return True
    if left_type == PUNCT and right_type == PUNCT:
        follower = _NEEDS_SEPARATION.get(left_value[-1:])
        if follower and right_value[:1] in follower:
            return True
    return False
