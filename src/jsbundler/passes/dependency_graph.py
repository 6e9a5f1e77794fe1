"""
Dependency Graph Pass: Scans every module reachable from the entry.

Fills `session.graph`, `session.modules` and the diagnostics source table.
"""

import logging

from ..analysis.module_system.graph_builder import DependencyGraphBuilder
from .base import BasePass, BuildSession

logger = logging.getLogger(__name__)


class DependencyGraphPass(BasePass):
    requires = []

    def run(self, session: BuildSession) -> None:
        builder = DependencyGraphBuilder(
            session.resolver,
            max_depth=session.config.options.max_depth,
            source_overlay=session.source_overlay,
        )
        # Share the table before building so a failing module can still be quoted
        builder.source_files = session.source_files
        graph = builder.build(session.config.entry_path)
        session.graph = graph
        session.modules = graph.modules
        session.set_analysis(DependencyGraphPass, graph.edges)
