"""
Base Pass System

A build is a fixed set of passes over one BuildSession. Passes declare what
they depend on; the PassManager orders them.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Type

from ..analysis.module_system.module_info import ModuleGraph, ModuleRecord
from ..analysis.module_system.path_resolver import PathResolver
from ..compiler.config import BundleConfig
from ..shared.errors import ErrorReporter
from ..utils.io_utils import display_path


class BuildSession:
    """
    Everything one build knows, created fresh for every build.

    - config, resolver (with its memo cache)
    - module map and dependency graph
    - build order and module ids
    - transformed module bodies, generated bundle, source map tracker
    - diagnostics reporter

    Passes write their results here; nothing survives between builds.
    """

    def __init__(
        self,
        config: BundleConfig,
        source_overlay: Optional[Mapping[str, str]] = None,
    ):
        self.config = config
        self.resolver = PathResolver(
            source_root=config.source_root_path,
            aliases=config.aliases,
            extensions=config.extensions,
            root_dir=config.project_root,
        )
        self.source_overlay: Dict[str, str] = dict(source_overlay or {})

        self.graph: Optional[ModuleGraph] = None
        self.modules: Dict[str, ModuleRecord] = {}
        self.build_order: List[str] = []
        self.module_ids: Dict[str, str] = {}
        self.transformed: Dict[str, str] = {}
        self.bundle: Optional[str] = None
        self.source_map: Optional[Any] = None  # SourceMapTracker

        self.source_files: Dict[str, str] = {}
        self.reporter: ErrorReporter = ErrorReporter(self.source_files)

        self._analysis_results: Dict[Type['BasePass'], Any] = {}

    @property
    def entry_path(self) -> str:
        if self.graph is None:
            raise RuntimeError("Dependency graph not built yet")
        return self.graph.entry

    @property
    def entry_id(self) -> str:
        return self.module_ids[self.entry_path]

    def display(self, path: str) -> str:
        return display_path(path, self.resolver.root_dir)

    def get_analysis(self, pass_class: Type['BasePass']) -> Any:
        """Get results stored by a pass"""
        if pass_class not in self._analysis_results:
            raise RuntimeError(f"Analysis {pass_class.__name__} not available")
        return self._analysis_results[pass_class]

    def set_analysis(self, pass_class: Type['BasePass'], results: Any) -> None:
        self._analysis_results[pass_class] = results


class BasePass(ABC):
    """
    Base class for all build passes.

    - Explicit dependencies via `requires`
    - Results stored on the BuildSession, never on the pass
    """
    requires: List[Type['BasePass']] = []

    @abstractmethod
    def run(self, session: BuildSession) -> None:
        raise NotImplementedError


class PassManager:
    """Runs registered passes in dependency order against one session."""

    def __init__(self):
        self.passes: List[Type[BasePass]] = []
        self._dependency_graph: Dict[Type[BasePass], set] = {}

    def register_pass(self, pass_class: Type[BasePass]) -> None:
        self.passes.append(pass_class)
        self._dependency_graph[pass_class] = set(pass_class.requires)

    def run_all(self, session: BuildSession) -> BuildSession:
        for pass_class in self._topological_sort():
            pass_class().run(session)
        return session

    def _topological_sort(self) -> List[Type[BasePass]]:
        """Topological sort of passes by dependencies"""
        in_degree = {p: len(self._dependency_graph[p]) for p in self.passes}
        queue = [p for p, degree in in_degree.items() if degree == 0]
        result = []

        while queue:
            pass_class = queue.pop(0)
            result.append(pass_class)

            for other_pass in self.passes:
                if pass_class in self._dependency_graph[other_pass]:
                    in_degree[other_pass] -= 1
                    if in_degree[other_pass] == 0:
                        queue.append(other_pass)

        if len(result) != len(self.passes):
            raise RuntimeError("Circular dependency detected in passes")

        return result
