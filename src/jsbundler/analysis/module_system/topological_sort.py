"""
Build Order

Three-color depth-first search over the dependency graph. A module is
appended only after everything it depends on, so for every edge A -> B the
order lists B before A.
"""

import logging
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from ...shared.errors import CircularImportError

logger = logging.getLogger(__name__)

WHITE, GRAY, BLACK = 0, 1, 2


class TopologicalSorter:
    """
    Dependency-first ordering.

    The graph builder already rejects cycles; this pass re-detects them so it
    is safe on any adjacency list handed to it.
    """

    def __init__(self, display: Optional[Callable[[str], str]] = None):
        self.display = display or (lambda path: path)

    def sort(self, edges: Mapping[str, Sequence[str]]) -> List[str]:
        """
        Args:
            edges: canonical path -> dependency paths, in insertion order

        Returns:
            Build order; roots are taken in mapping order, dependencies in
            their listed order, so equal input always gives equal output.
        """
        color: Dict[str, int] = {path: WHITE for path in edges}
        order: List[str] = []
        stack: List[str] = []

        def visit(path: str) -> None:
            state = color.get(path, WHITE)
            if state == BLACK:
                return
            if state == GRAY:
                start = stack.index(path)
                raise CircularImportError(
                    [self.display(p) for p in stack[start:] + [path]]
                )
            color[path] = GRAY
            stack.append(path)
            for dependency in edges.get(path, ()):
                visit(dependency)
            stack.pop()
            color[path] = BLACK
            order.append(path)

        for root in edges:
            visit(root)

        logger.debug(f"Build order: {[self.display(p) for p in order]}")
        return order
