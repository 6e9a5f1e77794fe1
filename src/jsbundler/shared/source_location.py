"""
Source Location (Span)

Points at a statement inside one module so diagnostics can quote it.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SourceLocation:
    """
    Location of a token or statement in a source file.

    - File, 1-based line and column
    - Character offsets into the raw module text (start inclusive, end exclusive)
    - Immutable (frozen) so descriptors holding it stay hashable
    """
    file: str
    line: int
    column: int
    start: int = 0
    end: int = 0
    end_line: int = 0
    end_column: int = 0

    def __str__(self) -> str:
        """Format as file:line:column"""
        return f"{self.file}:{self.line}:{self.column}"
