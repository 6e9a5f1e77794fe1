"""
Module System Types

Pure data shared between the graph builder, the ordering pass and the
transformer. No business logic lives here.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple

from ...shared.nodes import ExportDescriptor, ImportDescriptor


@dataclass(frozen=True)
class ModuleRecord:
    """
    One scanned source file.

    - canonical_path: absolute '/'-separated path, the module's identity
    - raw_content: file text exactly as read
    - imports / exports: statement descriptors in source order
    - dependency_paths: canonical paths of import and re-export sources,
      de-duplicated in first-seen order
    """
    canonical_path: str
    raw_content: str
    imports: Tuple[ImportDescriptor, ...]
    exports: Tuple[ExportDescriptor, ...]
    dependency_paths: Tuple[str, ...]

    def __str__(self) -> str:
        return (f"Module({self.canonical_path}, {len(self.imports)} imports, "
                f"{len(self.exports)} exports)")


@dataclass
class ModuleGraph:
    """
    Result of scanning from the entry module.

    `edges` maps each canonical path to the insertion-ordered tuple of paths it
    depends on; `modules` is keyed the same way, in discovery order.
    """
    entry: str
    modules: Dict[str, ModuleRecord]
    edges: Dict[str, Tuple[str, ...]]
    source_files: Dict[str, str] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.modules)
