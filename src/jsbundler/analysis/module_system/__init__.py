"""Module system: path resolution, dependency graph, build ordering."""

from .path_resolver import PathResolver
from .module_info import ModuleRecord, ModuleGraph
from .graph_builder import DependencyGraphBuilder
from .topological_sort import TopologicalSorter

__all__ = [
    'PathResolver',
    'ModuleRecord',
    'ModuleGraph',
    'DependencyGraphBuilder',
    'TopologicalSorter',
]
