"""
Import/export statement descriptors.

These are the only "syntax nodes" the bundler knows about: the scanner
produces them from a module's token stream, the transformer consumes them.
Each descriptor remembers the character span of the statement text it
replaces so the transformer can splice in the runtime equivalent.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .source_location import SourceLocation


class ImportKind(Enum):
    DEFAULT = "default"
    NAMED = "named"
    NAMESPACE = "namespace"
    SIDE_EFFECT = "side-effect"


class ExportKind(Enum):
    DECLARATION = "declaration"
    NAMED = "named"
    DEFAULT = "default"
    REEXPORT_ALL = "re-export-all"


DEFAULT_NAME = "default"
NAMESPACE_NAME = "*"


@dataclass(frozen=True)
class Span:
    """Half-open character range [start, end) in the raw module text."""
    start: int
    end: int

    def text(self, source: str) -> str:
        return source[self.start:self.end]


@dataclass(frozen=True)
class ImportBinding:
    """`imported` is an exported name, 'default' or '*'."""
    imported: str
    local: str


@dataclass(frozen=True)
class ExportBinding:
    """
    `local` is the module-scope name (None for `export default <expr>`),
    `exported` is the public name.
    """
    local: Optional[str]
    exported: str


@dataclass(frozen=True)
class ImportDescriptor:
    kind: ImportKind
    specifier: str
    bindings: Tuple[ImportBinding, ...]
    span: Span
    location: SourceLocation

    @property
    def default_binding(self) -> Optional[ImportBinding]:
        for binding in self.bindings:
            if binding.imported == DEFAULT_NAME:
                return binding
        return None

    @property
    def namespace_binding(self) -> Optional[ImportBinding]:
        for binding in self.bindings:
            if binding.imported == NAMESPACE_NAME:
                return binding
        return None

    @property
    def named_bindings(self) -> Tuple[ImportBinding, ...]:
        return tuple(
            b for b in self.bindings
            if b.imported not in (DEFAULT_NAME, NAMESPACE_NAME)
        )


@dataclass(frozen=True)
class ExportDescriptor:
    """
    One export statement.

    - DECLARATION: `keyword` is class/function/const/..., span covers only the
      `export` keyword so the declaration itself stays in place
    - DEFAULT: span covers `export default`; bindings[0].local names the
      declaration for `export default class Foo`, None for expressions
    - NAMED: span covers the whole statement; `source` set for `export {..} from`
    - REEXPORT_ALL: span covers the whole statement; `source` always set
    """
    kind: ExportKind
    bindings: Tuple[ExportBinding, ...]
    span: Span
    location: SourceLocation
    keyword: Optional[str] = None
    source: Optional[str] = None

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(b.exported for b in self.bindings)
