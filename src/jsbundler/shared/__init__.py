"""
Shared types: source locations, statement descriptors and diagnostics.
"""

from .source_location import SourceLocation
from .nodes import (
    ImportKind,
    ExportKind,
    Span,
    ImportBinding,
    ExportBinding,
    ImportDescriptor,
    ExportDescriptor,
)
from .errors import (
    Error,
    ErrorReporter,
    BundleError,
    UnresolvedModuleError,
    CircularImportError,
    DuplicateModuleIdError,
    ScanError,
    OutputSyntaxError,
    MetadataError,
    ConfigError,
)

__all__ = [
    'SourceLocation',
    'ImportKind',
    'ExportKind',
    'Span',
    'ImportBinding',
    'ExportBinding',
    'ImportDescriptor',
    'ExportDescriptor',
    'Error',
    'ErrorReporter',
    'BundleError',
    'UnresolvedModuleError',
    'CircularImportError',
    'DuplicateModuleIdError',
    'ScanError',
    'OutputSyntaxError',
    'MetadataError',
    'ConfigError',
]
