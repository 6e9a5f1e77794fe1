"""
Import/Export Scanner

Walks a module's significant tokens and recognizes the ES-module statement
shapes the bundler rewrites. Only statements at bracket depth zero count, so
an `import` key in an object literal or an `export` inside a string, template
or comment is never matched. Dynamic `import(...)` and `import.meta` are left
untouched.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from lark import Token

from ..shared.errors import ScanError
from ..shared.nodes import (
    DEFAULT_NAME,
    NAMESPACE_NAME,
    ExportBinding,
    ExportDescriptor,
    ExportKind,
    ImportBinding,
    ImportDescriptor,
    ImportKind,
    Span,
)
from ..shared.source_location import SourceLocation
from .lexer import (
    CLOSING,
    IDENT,
    NUMBER,
    OPENING,
    PUNCT,
    STRING,
    TRIVIA_TYPES,
    Lexer,
    is_ident,
    is_identifier_name,
    is_punct,
)

logger = logging.getLogger(__name__)

_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)

# A line break ends a `const/let/var` initializer unless one of these sits on
# either side of it.
_CONTINUES_AFTER = frozenset((
    "=", "=>", "+", "-", "*", "/", "%", "&", "|", "^", "!", "~", "?", ":",
    "<", ">", ",", ".", "?.", "...",
))
_CONTINUES_BEFORE = frozenset(("=", "+", "-", "*", "/", "%", "&", "|", "^",
                               "?", ":", "<", ">", ",", ".", "?.", "=>"))

_DECLARATION_KEYWORDS = ("const", "let", "var")


@dataclass(frozen=True)
class ScanResult:
    imports: Tuple[ImportDescriptor, ...]
    exports: Tuple[ExportDescriptor, ...]

    @property
    def import_specifiers(self) -> Tuple[str, ...]:
        return tuple(d.specifier for d in self.imports)

    @property
    def reexport_specifiers(self) -> Tuple[str, ...]:
        return tuple(d.source for d in self.exports if d.source is not None)


def unquote(literal: str) -> str:
    """Strip the quotes of a string token and undo simple backslash escapes."""
    return _ESCAPE_RE.sub(r"\1", literal[1:-1])


class ImportExportScanner:
    """Extracts import and export descriptors from one module."""

    def __init__(self, lexer: Optional[Lexer] = None):
        self.lexer = lexer or Lexer()

    def scan(self, source: str, path: str) -> ScanResult:
        tokens = [t for t in self.lexer.tokenize(source) if t.type not in TRIVIA_TYPES]
        return _ModuleScan(tokens, path).run()


class _ModuleScan:
    """Single-use cursor over the significant tokens of one module."""

    def __init__(self, tokens: List[Token], path: str):
        self.tokens = tokens
        self.path = path
        self.imports: List[ImportDescriptor] = []
        self.exports: List[ExportDescriptor] = []

    def run(self) -> ScanResult:
        depth = 0
        i = 0
        while i < len(self.tokens):
            tok = self.tokens[i]
            if tok.type == PUNCT:
                if tok.value in OPENING:
                    depth += 1
                elif tok.value in CLOSING:
                    depth = max(depth - 1, 0)
                i += 1
                continue
            if depth == 0 and tok.type == IDENT and not self._after_member_access(i):
                if tok.value == "import" and not self._is_import_expression(i):
                    i = self._scan_import(i)
                    continue
                if tok.value == "export":
                    i = self._scan_export(i)
                    continue
            i += 1
        logger.debug(
            f"Scanned {self.path}: {len(self.imports)} import(s), {len(self.exports)} export(s)"
        )
        return ScanResult(tuple(self.imports), tuple(self.exports))

    # ------------------------------------------------------------------
    # Cursor helpers
    # ------------------------------------------------------------------

    def _peek(self, i: int) -> Optional[Token]:
        return self.tokens[i] if 0 <= i < len(self.tokens) else None

    def _after_member_access(self, i: int) -> bool:
        prev = self._peek(i - 1)
        return is_punct(prev, ".") or is_punct(prev, "?.")

    def _is_import_expression(self, i: int) -> bool:
        nxt = self._peek(i + 1)
        return is_punct(nxt, "(") or is_punct(nxt, ".")

    def _location(self, first: Token, last: Optional[Token] = None) -> SourceLocation:
        last = last or first
        return SourceLocation(
            file=self.path,
            line=first.line,
            column=first.column,
            start=first.start_pos,
            end=last.end_pos,
            end_line=last.end_line,
            end_column=last.end_column,
        )

    def _error(self, message: str, i: int, start: Token) -> ScanError:
        tok = self._peek(i)
        if tok is None:
            return ScanError(
                f"{message}, found end of file",
                self._location(start, self.tokens[-1]),
                label="statement starts here",
            )
        return ScanError(
            f"{message}, found `{tok.value}`",
            self._location(tok),
            label="unexpected token",
        )

    def _expect_ident(self, i: int, start: Token, value: Optional[str] = None) -> Tuple[str, int]:
        tok = self._peek(i)
        if not is_ident(tok, value):
            expected = f"`{value}`" if value else "identifier"
            raise self._error(f"expected {expected}", i, start)
        return tok.value, i + 1

    def _expect_module_name(self, i: int, start: Token) -> Tuple[str, int]:
        """Name inside braces: an identifier or, for arbitrary names, a string."""
        tok = self._peek(i)
        if tok is not None and tok.type in (IDENT, STRING):
            return (unquote(tok.value) if tok.type == STRING else tok.value), i + 1
        raise self._error("expected name", i, start)

    def _expect_from(self, i: int, start: Token) -> Tuple[str, int]:
        _, i = self._expect_ident(i, start, "from")
        tok = self._peek(i)
        if tok is None or tok.type != STRING:
            raise self._error("expected module specifier string", i, start)
        return unquote(tok.value), i + 1

    def _end_statement(self, i: int) -> int:
        """Consume an optional `;` and return the index after the statement."""
        return i + 1 if is_punct(self._peek(i), ";") else i

    def _span(self, start: Token, end_index: int) -> Tuple[Span, SourceLocation]:
        last = self.tokens[end_index - 1]
        return Span(start.start_pos, last.end_pos), self._location(start, last)

    # ------------------------------------------------------------------
    # import
    # ------------------------------------------------------------------

    def _scan_import(self, i: int) -> int:
        start = self.tokens[i]
        j = i + 1
        tok = self._peek(j)
        if tok is not None and tok.type == STRING:
            end = self._end_statement(j + 1)
            span, loc = self._span(start, end)
            self.imports.append(ImportDescriptor(
                ImportKind.SIDE_EFFECT, unquote(tok.value), (), span, loc,
            ))
            return end

        kind: Optional[ImportKind] = None
        bindings: List[ImportBinding] = []

        if is_ident(tok):
            kind = ImportKind.DEFAULT
            bindings.append(ImportBinding(DEFAULT_NAME, tok.value))
            j += 1
            if is_punct(self._peek(j), ","):
                j += 1
                if not (is_punct(self._peek(j), "{") or is_punct(self._peek(j), "*")):
                    raise self._error("expected `{` or `*` after `,`", j, start)

        if is_punct(self._peek(j), "*"):
            _, j = self._expect_ident(j + 1, start, "as")
            local, j = self._expect_ident(j, start)
            bindings.append(ImportBinding(NAMESPACE_NAME, local))
            kind = kind or ImportKind.NAMESPACE
        elif is_punct(self._peek(j), "{"):
            j = self._scan_import_list(j, start, bindings)
            kind = kind or ImportKind.NAMED
        elif kind is None:
            raise self._error("expected import clause", j, start)

        specifier, j = self._expect_from(j, start)
        end = self._end_statement(j)
        span, loc = self._span(start, end)
        self.imports.append(ImportDescriptor(kind, specifier, tuple(bindings), span, loc))
        return end

    def _scan_import_list(self, j: int, start: Token, bindings: List[ImportBinding]) -> int:
        j += 1
        while not is_punct(self._peek(j), "}"):
            imported, j = self._expect_module_name(j, start)
            local = imported
            if is_ident(self._peek(j), "as"):
                local, j = self._expect_ident(j + 1, start)
            elif not is_identifier_name(imported):
                raise self._error("expected `as`", j, start)
            bindings.append(ImportBinding(imported, local))
            if is_punct(self._peek(j), ","):
                j += 1
            elif not is_punct(self._peek(j), "}"):
                raise self._error("expected `,` or `}`", j, start)
        return j + 1

    # ------------------------------------------------------------------
    # export
    # ------------------------------------------------------------------

    def _scan_export(self, i: int) -> int:
        start = self.tokens[i]
        nxt = self._peek(i + 1)

        if is_ident(nxt, "default"):
            return self._scan_export_default(i)
        if is_punct(nxt, "{"):
            return self._scan_export_list(i)
        if is_punct(nxt, "*"):
            return self._scan_export_star(i)
        if is_ident(nxt, "class"):
            name, _ = self._expect_ident(i + 2, start)
            self._add_declaration(start, "class", [name])
            return i + 1
        if is_ident(nxt, "function"):
            j = i + 2
            if is_punct(self._peek(j), "*"):
                j += 1
            name, _ = self._expect_ident(j, start)
            self._add_declaration(start, "function", [name])
            return i + 1
        if is_ident(nxt, "async") and is_ident(self._peek(i + 2), "function"):
            j = i + 3
            if is_punct(self._peek(j), "*"):
                j += 1
            name, _ = self._expect_ident(j, start)
            self._add_declaration(start, "async function", [name])
            return i + 1
        if nxt is not None and nxt.type == IDENT and nxt.value in _DECLARATION_KEYWORDS:
            names = self._declarator_names(i + 2, start)
            self._add_declaration(start, nxt.value, names)
            return i + 1
        raise self._error("expected declaration or export clause after `export`", i + 1, start)

    def _add_declaration(self, start: Token, keyword: str, names: List[str]) -> None:
        self.exports.append(ExportDescriptor(
            ExportKind.DECLARATION,
            tuple(ExportBinding(n, n) for n in names),
            Span(start.start_pos, start.end_pos),
            self._location(start),
            keyword=keyword,
        ))

    def _scan_export_default(self, i: int) -> int:
        start = self.tokens[i]
        default_tok = self.tokens[i + 1]
        j = i + 2
        if self._peek(j) is None:
            raise self._error("expected expression after `export default`", j, start)

        local = None
        keyword = None
        k = j
        if is_ident(self._peek(k), "async") and is_ident(self._peek(k + 1), "function"):
            k += 1
        if is_ident(self._peek(k), "function"):
            keyword = "function"
            k += 1
            if is_punct(self._peek(k), "*"):
                k += 1
            if is_ident(self._peek(k)):
                local = self.tokens[k].value
        elif is_ident(self._peek(k), "class"):
            keyword = "class"
            candidate = self._peek(k + 1)
            if is_ident(candidate) and candidate.value != "extends":
                local = candidate.value

        self.exports.append(ExportDescriptor(
            ExportKind.DEFAULT,
            (ExportBinding(local, DEFAULT_NAME),),
            Span(start.start_pos, default_tok.end_pos),
            self._location(start, default_tok),
            keyword=keyword,
        ))
        return j

    def _scan_export_list(self, i: int) -> int:
        start = self.tokens[i]
        j = i + 2
        bindings: List[ExportBinding] = []
        while not is_punct(self._peek(j), "}"):
            local, j = self._expect_module_name(j, start)
            exported = local
            if is_ident(self._peek(j), "as"):
                exported, j = self._expect_module_name(j + 1, start)
            bindings.append(ExportBinding(local, exported))
            if is_punct(self._peek(j), ","):
                j += 1
            elif not is_punct(self._peek(j), "}"):
                raise self._error("expected `,` or `}`", j, start)
        j += 1

        source = None
        if is_ident(self._peek(j), "from"):
            source, j = self._expect_from(j, start)
        else:
            for binding in bindings:
                if not is_identifier_name(binding.local):
                    raise ScanError(
                        f"cannot export local name '{binding.local}'",
                        self._location(start),
                        help="string names are only allowed when re-exporting with `from`",
                    )
        end = self._end_statement(j)
        span, loc = self._span(start, end)
        self.exports.append(ExportDescriptor(
            ExportKind.NAMED, tuple(bindings), span, loc, source=source,
        ))
        return end

    def _scan_export_star(self, i: int) -> int:
        start = self.tokens[i]
        j = i + 2
        if is_ident(self._peek(j), "as"):
            exported, j = self._expect_module_name(j + 1, start)
            source, j = self._expect_from(j, start)
            end = self._end_statement(j)
            span, loc = self._span(start, end)
            self.exports.append(ExportDescriptor(
                ExportKind.NAMED,
                (ExportBinding(NAMESPACE_NAME, exported),),
                span,
                loc,
                source=source,
            ))
            return end

        source, j = self._expect_from(j, start)
        end = self._end_statement(j)
        span, loc = self._span(start, end)
        self.exports.append(ExportDescriptor(
            ExportKind.REEXPORT_ALL, (), span, loc, source=source,
        ))
        return end

    # ------------------------------------------------------------------
    # const / let / var declarators
    # ------------------------------------------------------------------

    def _declarator_names(self, j: int, start: Token) -> List[str]:
        names: List[str] = []
        while True:
            found, j = self._binding_target(j, start)
            names.extend(found)
            if is_punct(self._peek(j), "="):
                j = self._skip_initializer(j + 1, start)
            if is_punct(self._peek(j), ","):
                j += 1
                continue
            return names

    def _binding_target(self, j: int, start: Token) -> Tuple[List[str], int]:
        tok = self._peek(j)
        if is_ident(tok):
            return [tok.value], j + 1
        if is_punct(tok, "{"):
            return self._object_pattern(j, start)
        if is_punct(tok, "["):
            return self._array_pattern(j, start)
        raise self._error("expected binding name or pattern", j, start)

    def _object_pattern(self, j: int, start: Token) -> Tuple[List[str], int]:
        names: List[str] = []
        j += 1
        while not is_punct(self._peek(j), "}"):
            if is_punct(self._peek(j), "..."):
                found, j = self._binding_target(j + 1, start)
                names.extend(found)
            else:
                key = self._peek(j)
                if is_punct(key, "["):
                    j = self._skip_balanced(j, start)
                elif key is not None and key.type in (IDENT, STRING, NUMBER):
                    j += 1
                else:
                    raise self._error("expected property name", j, start)
                if is_punct(self._peek(j), ":"):
                    found, j = self._binding_target(j + 1, start)
                    names.extend(found)
                elif is_ident(key):
                    names.append(key.value)
                else:
                    raise self._error("expected `:`", j, start)
                if is_punct(self._peek(j), "="):
                    j = self._skip_default(j + 1, start)
            if is_punct(self._peek(j), ","):
                j += 1
            elif not is_punct(self._peek(j), "}"):
                raise self._error("expected `,` or `}`", j, start)
        return names, j + 1

    def _array_pattern(self, j: int, start: Token) -> Tuple[List[str], int]:
        names: List[str] = []
        j += 1
        while not is_punct(self._peek(j), "]"):
            if is_punct(self._peek(j), ","):
                j += 1
                continue
            if is_punct(self._peek(j), "..."):
                j += 1
            found, j = self._binding_target(j, start)
            names.extend(found)
            if is_punct(self._peek(j), "="):
                j = self._skip_default(j + 1, start)
            if is_punct(self._peek(j), ","):
                j += 1
            elif not is_punct(self._peek(j), "]"):
                raise self._error("expected `,` or `]`", j, start)
        return names, j + 1

    def _skip_balanced(self, j: int, start: Token) -> int:
        """Skip from an opening bracket to just past its partner."""
        depth = 0
        while True:
            tok = self._peek(j)
            if tok is None:
                raise self._error("unbalanced brackets in export declaration", j, start)
            if tok.type == PUNCT and tok.value in OPENING:
                depth += 1
            elif tok.type == PUNCT and tok.value in CLOSING:
                depth -= 1
                if depth == 0:
                    return j + 1
            j += 1

    def _skip_default(self, j: int, start: Token) -> int:
        """Skip a pattern default value up to the next `,` or closing bracket."""
        while True:
            tok = self._peek(j)
            if tok is None:
                raise self._error("unterminated default value", j, start)
            if tok.type == PUNCT and tok.value in OPENING:
                j = self._skip_balanced(j, start)
                continue
            if tok.type == PUNCT and (tok.value == "," or tok.value in CLOSING):
                return j
            j += 1

    def _skip_initializer(self, j: int, start: Token) -> int:
        """
        Skip an initializer expression. It ends at a depth-zero `,` or `;`,
        at end of file, or at a line break that cannot continue the expression.
        """
        if self._peek(j) is None:
            raise self._error("expected initializer", j, start)
        while True:
            tok = self._peek(j)
            if tok is None:
                return j
            if tok.type == PUNCT and tok.value in OPENING:
                j = self._skip_balanced(j, start)
                if self._line_break_ends(j):
                    return j
                continue
            if tok.type == PUNCT and tok.value in (",", ";"):
                return j
            if tok.type == PUNCT and tok.value in CLOSING:
                raise self._error("unbalanced brackets in export declaration", j, start)
            j += 1
            if self._line_break_ends(j):
                return j

    def _line_break_ends(self, j: int) -> bool:
        prev, nxt = self._peek(j - 1), self._peek(j)
        if prev is None or nxt is None or nxt.line <= prev.end_line:
            return False
        if prev.type == PUNCT and prev.value in _CONTINUES_AFTER:
            return False
        if nxt.type == PUNCT and nxt.value in _CONTINUES_BEFORE:
            return False
        return True