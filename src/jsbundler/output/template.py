"""
Userscript Template

Renders the `// ==UserScript==` metadata block that must open the artifact,
checks it for missing or suspicious fields, and parses an existing block back
into a dict.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from ..compiler.config import MetadataConfig
from ..shared.errors import MetadataError
from ..utils.config import METADATA_END, METADATA_KEY_WIDTH, METADATA_START

logger = logging.getLogger(__name__)

TOOL_NAME = "jsbundler"

# Config field -> header key, in emission order
_SCALAR_KEYS: Tuple[Tuple[str, str], ...] = (
    ("name", "name"),
    ("namespace", "namespace"),
    ("version", "version"),
    ("description", "description"),
    ("author", "author"),
)
_LIST_KEYS: Tuple[Tuple[str, str], ...] = (
    ("match", "match"),
    ("include", "include"),
    ("exclude", "exclude"),
    ("grant", "grant"),
)
_TRAILING_KEYS: Tuple[Tuple[str, str], ...] = (
    ("run_at", "run-at"),
    ("homepage", "homepage"),
    ("icon", "icon"),
    ("update_url", "updateURL"),
    ("download_url", "downloadURL"),
    ("support_url", "supportURL"),
)
_RESOURCE_KEYS: Tuple[Tuple[str, str], ...] = (
    ("require", "require"),
    ("resource", "resource"),
)

MULTI_VALUE_KEYS = frozenset({"match", "include", "exclude", "grant", "require", "resource"})

_SEMVER_RE = re.compile(
    r"^(\d+)\.(\d+)\.(\d+)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)
_DOTTED_RE = re.compile(r"^\d+(\.\d+)*$")
_HEADER_LINE_RE = re.compile(r"^//\s*@([\w-]+)(?:\s+(.*?))?\s*$")


def is_valid_version(version: str) -> bool:
    return bool(_SEMVER_RE.match(version) or _DOTTED_RE.match(version))


def _line(key: str, value: Optional[str] = None) -> str:
    tag = f"@{key}"
    if value is None:
        return f"// {tag}"
    return f"// {tag:<{METADATA_KEY_WIDTH}} {value}"


class UserscriptTemplate:
    def __init__(self, metadata: MetadataConfig, build_date: Optional[datetime] = None):
        self.metadata = metadata
        self.build_date = build_date or datetime.now(timezone.utc)

    def validate(self) -> List[str]:
        """
        Check the metadata.

        Returns:
            Advisory warnings (missing description, odd version, no match
            rules, no grant, no run-at).

        Raises:
            MetadataError: name or version is missing
        """
        meta = self.metadata
        missing = [f for f in ("name", "version") if not getattr(meta, f)]
        if missing:
            raise MetadataError(
                f"userscript metadata is missing required field(s): {', '.join(missing)}",
                help="set them under `metadata:` in the build configuration",
            )

        warnings: List[str] = []
        if not meta.description:
            warnings.append("metadata has no description (@description)")
        if not is_valid_version(meta.version):
            warnings.append(f"version '{meta.version}' is neither semver nor dotted numeric")
        if not meta.match and not meta.include:
            warnings.append("no match rules set (@match or @include)")
        if not meta.grant:
            warnings.append("no permissions set (@grant); use 'none' or the APIs the script needs")
        if not meta.run_at:
            warnings.append("no injection time set (@run-at)")
        for warning in warnings:
            logger.warning(warning)
        return warnings

    def render_header(self) -> str:
        meta = self.metadata
        lines = [METADATA_START]
        for field, key in _SCALAR_KEYS:
            value = getattr(meta, field)
            if value:
                lines.append(_line(key, value))
        for field, key in _LIST_KEYS:
            lines.extend(_line(key, value) for value in getattr(meta, field))
        for field, key in _TRAILING_KEYS:
            value = getattr(meta, field)
            if value:
                lines.append(_line(key, value))
        for field, key in _RESOURCE_KEYS:
            lines.extend(_line(key, value) for value in getattr(meta, field))
        if meta.noframes:
            lines.append(_line("noframes"))
        for key, value in meta.custom.items():
            values = value if isinstance(value, list) else [value]
            lines.extend(_line(key, v) for v in values)
        lines.append(_line("buildDate", self.build_date.strftime("%Y-%m-%dT%H:%M:%SZ")))
        lines.append(METADATA_END)
        return "\n".join(lines)

    def render_footer(self) -> str:
        stamp = self.build_date.strftime("%Y-%m-%d %H:%M:%S UTC")
        return "\n".join([
            "// Build information",
            f"// Built at: {stamp}",
            f"// Built with: {TOOL_NAME}",
        ])

    def header_line_count(self) -> int:
        """Lines the header and its blank separator add before the code."""
        return self.render_header().count("\n") + 2

    def wrap(self, code: str) -> str:
        """header, blank line, code, blank line, footer"""
        body = code.rstrip("\n")
        return f"{self.render_header()}\n\n{body}\n\n{self.render_footer()}\n"

    @staticmethod
    def extract_metadata(text: str) -> Dict[str, Any]:
        return extract_metadata(text)


def extract_metadata(text: str) -> Dict[str, Union[str, bool, List[str]]]:
    """
    Parse the first metadata block in `text`.

    Keys that may repeat (match, grant, ...) collect a list; a key without a
    value (`// @noframes`) maps to True.
    """
    metadata: Dict[str, Any] = {}
    in_header = False
    for line in text.splitlines():
        stripped = line.strip()
        if stripped == METADATA_START:
            in_header = True
            continue
        if stripped == METADATA_END:
            break
        if not in_header:
            continue
        match = _HEADER_LINE_RE.match(stripped)
        if not match:
            continue
        key, value = match.group(1), match.group(2)
        if key in MULTI_VALUE_KEYS:
            metadata.setdefault(key, []).append(value or "")
        else:
            metadata[key] = value if value else True
    return metadata
