"""
Build Order Pass: Dependency-first ordering of the module map.
"""

import logging

from ..analysis.module_system.topological_sort import TopologicalSorter
from .base import BasePass, BuildSession
from .dependency_graph import DependencyGraphPass

logger = logging.getLogger(__name__)


class BuildOrderPass(BasePass):
    requires = [DependencyGraphPass]

    def run(self, session: BuildSession) -> None:
        edges = session.get_analysis(DependencyGraphPass)
        order = TopologicalSorter(display=session.display).sort(edges)
        session.build_order = order
        session.set_analysis(BuildOrderPass, order)
        logger.info(f"Build order has {len(order)} module(s), entry last: {session.display(order[-1])}")
