"""
Module Path Resolution

Turns an import specifier plus the importing module's directory into one
canonical, extension-normalized path. Resolution order:

- `./x` and `../x` relative to the importing module's directory
- absolute specifiers unchanged
- alias table, longest matching prefix first
- everything else relative to the source root

A configured extension is appended only when the last path segment has none.
Anything after a dot counts as an extension, so `./lib.utils` stays as written
and must exist under that exact name; import it as `./lib.utils.js` instead.

Results are memoized per (base_dir, specifier). A path that does not exist is
still returned; deciding that a module is missing is the graph builder's job.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Tuple, Union

from ...utils.config import (
    ALIAS_SEPARATOR,
    DEFAULT_MODULE_EXTENSION,
    PATH_SEPARATOR,
    RELATIVE_PREFIXES,
)
from ...utils.io_utils import normalize_path

logger = logging.getLogger(__name__)


class PathResolver:
    """
    Specifier to canonical path resolution.

    Canonical paths are absolute, normalized and always use '/' separators,
    so two spellings of the same file (`./a`, `../src/a.js`) compare equal.
    """

    def __init__(
        self,
        source_root: Union[Path, str],
        aliases: Optional[Mapping[str, str]] = None,
        extensions: Optional[Sequence[str]] = None,
        root_dir: Optional[Union[Path, str]] = None,
    ):
        """
        Args:
            source_root: Directory bare specifiers resolve against
            aliases: Prefix to directory table (relative dirs resolve against root_dir)
            extensions: Extensions tried, in order, for specifiers without one
            root_dir: Project root (defaults to the current directory)
        """
        self.root_dir = normalize_path(root_dir if root_dir is not None else os.getcwd())
        self.source_root = self._against_root(source_root)
        self.extensions: Tuple[str, ...] = tuple(extensions or (DEFAULT_MODULE_EXTENSION,))
        # Longest key first so '@app/utils' beats '@app'
        self.aliases: Tuple[Tuple[str, str], ...] = tuple(
            sorted(
                ((key.rstrip(ALIAS_SEPARATOR), self._against_root(target))
                 for key, target in (aliases or {}).items()),
                key=lambda item: len(item[0]),
                reverse=True,
            )
        )
        self._cache: Dict[Tuple[str, str], str] = {}

    def _against_root(self, path: Union[Path, str]) -> str:
        path = str(path)
        if os.path.isabs(path):
            return normalize_path(path)
        return normalize_path(os.path.join(self.root_dir, path))

    def resolve(self, specifier: str, base_dir: Union[Path, str]) -> str:
        """
        Resolve `specifier` as written in a module living in `base_dir`.

        Examples (source_root=/p/src, aliases={'@utils': 'src/utils'}):
            resolve('./b', '/p/src/a')      → '/p/src/a/b.js'
            resolve('@utils/x', '/p/src')   → '/p/src/utils/x.js'
            resolve('lib/y.js', '/p/src/a') → '/p/src/lib/y.js'
        """
        base = str(base_dir)
        key = (base, specifier)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        resolved = self._with_extension(self._locate(specifier, base))
        self._cache[key] = resolved
        logger.debug(f"PathResolver: '{specifier}' from {base} -> {resolved}")
        return resolved

    def _locate(self, specifier: str, base: str) -> str:
        if specifier.startswith(RELATIVE_PREFIXES) or specifier in (".", ".."):
            return normalize_path(os.path.join(base, specifier))
        if os.path.isabs(specifier):
            return normalize_path(specifier)
        alias = self.match_alias(specifier)
        if alias is not None:
            key, target = alias
            remainder = specifier[len(key):].lstrip(ALIAS_SEPARATOR)
            return normalize_path(os.path.join(target, remainder)) if remainder else target
        return normalize_path(os.path.join(self.source_root, specifier))

    def match_alias(self, specifier: str) -> Optional[Tuple[str, str]]:
        """Longest alias whose key equals the specifier or prefixes it at a '/'."""
        for key, target in self.aliases:
            if specifier == key or specifier.startswith(key + ALIAS_SEPARATOR):
                return key, target
        return None

    def _with_extension(self, path: str) -> str:
        name = path.rsplit(PATH_SEPARATOR, 1)[-1]
        if os.path.splitext(name)[1]:
            return path
        for extension in self.extensions:
            candidate = path + extension
            if os.path.isfile(candidate):
                return candidate
        return path + self.extensions[0]
