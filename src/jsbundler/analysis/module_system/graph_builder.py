"""
Dependency Graph Builder

Depth-first walk from the entry module. Each distinct canonical path is read
and scanned exactly once; import and re-export sources become edges.

Cycle detection is per branch: every recursive call receives its own copy of
the chain of modules currently being visited, so a module reached twice
through a diamond is not mistaken for a cycle.
"""

import logging
import os
from typing import Dict, List, Mapping, Optional, Tuple

from ...frontend.scanner import ImportExportScanner
from ...shared.errors import BundleError, CircularImportError, SourceDecodeError, UnresolvedModuleError
from ...shared.source_location import SourceLocation
from ...utils.config import DEFAULT_MAX_DEPTH
from ...utils.io_utils import display_path, read_source_file
from .module_info import ModuleGraph, ModuleRecord
from .path_resolver import PathResolver

logger = logging.getLogger(__name__)


class DependencyGraphBuilder:
    """
    Builds the module map and adjacency list for one build.

    Not reusable across builds: the module map lives on the instance.
    """

    def __init__(
        self,
        resolver: PathResolver,
        scanner: Optional[ImportExportScanner] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        source_overlay: Optional[Mapping[str, str]] = None,
    ):
        """
        Args:
            resolver: Shared resolver (its cache is reused by the transformer)
            scanner: Import/export scanner (auto-created if None)
            max_depth: Longest import chain accepted before giving up
            source_overlay: Optional in-memory sources keyed by canonical path;
                            consulted before the filesystem
        """
        self.resolver = resolver
        self.scanner = scanner or ImportExportScanner()
        self.max_depth = max_depth
        self.source_overlay = dict(source_overlay or {})
        self.modules: Dict[str, ModuleRecord] = {}
        self.edges: Dict[str, Tuple[str, ...]] = {}
        self.source_files: Dict[str, str] = {}

    def build(self, entry: str) -> ModuleGraph:
        """
        Scan everything reachable from `entry`.

        Raises:
            UnresolvedModuleError: entry or an imported module does not exist
            CircularImportError: an import chain returns to a module on it
            ScanError: a module contains a malformed import/export statement
            SourceDecodeError: a module file is not valid UTF-8
        """
        entry_path = self.resolver.resolve(entry, self.resolver.root_dir)
        if not self._exists(entry_path):
            raise UnresolvedModuleError(
                f"entry module not found: {self.display(entry_path)}",
                help="check `entry` in the build configuration",
            )
        self._visit(entry_path, ())
        logger.info(f"Scanned {len(self.modules)} module(s) from {self.display(entry_path)}")
        return ModuleGraph(
            entry=entry_path,
            modules=self.modules,
            edges=self.edges,
            source_files=self.source_files,
        )

    def display(self, path: str) -> str:
        return display_path(path, self.resolver.root_dir)

    def _exists(self, path: str) -> bool:
        return path in self.source_overlay or os.path.isfile(path)

    def _read(self, path: str) -> str:
        if path in self.source_overlay:
            return self.source_overlay[path]
        try:
            return read_source_file(path)
        except UnicodeDecodeError as e:
            raw = e.object
            line_start = raw.rfind(b"\n", 0, e.start) + 1
            location = SourceLocation(
                self.display(path),
                raw.count(b"\n", 0, e.start) + 1,
                e.start - line_start + 1,
                start=e.start,
                end=e.end,
            )
            raise SourceDecodeError(
                f"module is not valid UTF-8: {self.display(path)}",
                location,
                help=f"byte 0x{raw[e.start]:02x} at offset {e.start} cannot be decoded; save the file as UTF-8",
            ) from e

    def _visit(self, path: str, visiting: Tuple[str, ...]) -> None:
        if path in visiting:
            chain = [self.display(p) for p in visiting + (path,)]
            raise CircularImportError(chain)
        if path in self.modules:
            return
        if len(visiting) >= self.max_depth:
            raise BundleError(
                f"import chain deeper than {self.max_depth} modules at {self.display(path)}",
                help="raise `options.max_depth` if the chain is legitimate",
            )

        source = self._read(path)
        shown = self.display(path)
        self.source_files[shown] = source
        scan = self.scanner.scan(source, shown)

        base_dir = os.path.dirname(path)
        dependencies: List[str] = []
        origins: Dict[str, Tuple[str, SourceLocation]] = {}
        statements = sorted(
            [(d.span.start, d.specifier, d.location) for d in scan.imports]
            + [(d.span.start, d.source, d.location) for d in scan.exports if d.source is not None]
        )
        for _, specifier, location in statements:
            target = self.resolver.resolve(specifier, base_dir)
            if target not in origins:
                origins[target] = (specifier, location)
                dependencies.append(target)

        record = ModuleRecord(
            canonical_path=path,
            raw_content=source,
            imports=scan.imports,
            exports=scan.exports,
            dependency_paths=tuple(dependencies),
        )
        self.modules[path] = record
        self.edges[path] = record.dependency_paths
        logger.debug(f"Recorded {record}")

        for target in record.dependency_paths:
            if target not in visiting and target not in self.modules and not self._exists(target):
                specifier, location = origins[target]
                raise UnresolvedModuleError(
                    f"module not found: '{specifier}' imported by {shown}",
                    location,
                    help=f"resolved to {self.display(target)}",
                    label="imported here",
                )
            self._visit(target, visiting + (path,))
