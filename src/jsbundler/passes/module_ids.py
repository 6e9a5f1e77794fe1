"""
Module Id Pass: Assigns the registry key of every module.

An id is the canonical path relative to the source root with the extension
removed (`src/utils/dom.js` -> `utils/dom`). Files outside the source root
keep their full normalized path, minus the extension.
"""

import logging
import os
from typing import Dict, Iterable

from ..shared.errors import DuplicateModuleIdError
from ..utils.config import PATH_SEPARATOR
from .base import BasePass, BuildSession
from .build_order import BuildOrderPass

logger = logging.getLogger(__name__)


def module_id_for(path: str, source_root: str) -> str:
    root = source_root.rstrip(PATH_SEPARATOR) + PATH_SEPARATOR
    relative = path[len(root):] if path.startswith(root) else path
    stem, _ = os.path.splitext(relative)
    return stem


class ModuleIdAssigner:
    def __init__(self, source_root: str):
        self.source_root = source_root

    def assign(self, paths: Iterable[str]) -> Dict[str, str]:
        """
        Raises:
            DuplicateModuleIdError: two paths share an id (e.g. `a.js` and `a.mjs`)
        """
        ids: Dict[str, str] = {}
        owners: Dict[str, str] = {}
        for path in paths:
            module_id = module_id_for(path, self.source_root)
            if module_id in owners:
                raise DuplicateModuleIdError(
                    f"module id '{module_id}' is used by both {owners[module_id]} and {path}",
                    help="rename one of the files so their paths differ without the extension",
                )
            owners[module_id] = path
            ids[path] = module_id
        return ids


class ModuleIdPass(BasePass):
    requires = [BuildOrderPass]

    def run(self, session: BuildSession) -> None:
        assigner = ModuleIdAssigner(session.resolver.source_root)
        session.module_ids = assigner.assign(session.build_order)
        session.set_analysis(ModuleIdPass, session.module_ids)
        logger.debug(f"Module ids: {list(session.module_ids.values())}")
