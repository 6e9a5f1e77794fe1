"""
Source Maps

Records where each module's body starts in the bundle and emits a version 3
source map. Every module contributes one mapping segment: its first body line
in the output points at line 1, column 0 of the original file.
"""

import base64
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from ..utils.config import (
    SOURCE_MAP_COMMENT_PREFIX,
    SOURCE_MAP_DATA_URI_PREFIX,
    SOURCE_MAP_VERSION,
)

logger = logging.getLogger(__name__)

_BASE64_DIGITS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_VLQ_SHIFT = 5
_VLQ_CONTINUATION = 1 << _VLQ_SHIFT
_VLQ_MASK = _VLQ_CONTINUATION - 1


def encode_vlq(value: int) -> str:
    """Base64 VLQ encoding of one signed integer (sign in the lowest bit)."""
    vlq = ((-value) << 1) | 1 if value < 0 else value << 1
    digits = []
    while True:
        digit = vlq & _VLQ_MASK
        vlq >>= _VLQ_SHIFT
        if vlq:
            digit |= _VLQ_CONTINUATION
        digits.append(_BASE64_DIGITS[digit])
        if not vlq:
            return "".join(digits)


def decode_vlq(text: str) -> List[int]:
    """Inverse of encode_vlq over a run of concatenated values."""
    values: List[int] = []
    shift = 0
    accumulated = 0
    for char in text:
        digit = _BASE64_DIGITS.index(char)
        accumulated += (digit & _VLQ_MASK) << shift
        if digit & _VLQ_CONTINUATION:
            shift += _VLQ_SHIFT
            continue
        negative = accumulated & 1
        accumulated >>= 1
        values.append(-accumulated if negative else accumulated)
        accumulated = 0
        shift = 0
    return values


@dataclass
class ModuleMapping:
    source: str
    content: str
    start_line: int  # 1-based line of the first body line in the bundle


class SourceMapTracker:
    """Collects module start lines while the runtime wrapper is generated."""

    def __init__(self, output_file: str):
        self.output_file = output_file
        self.modules: List[ModuleMapping] = []

    def add_module(self, source: str, content: str, start_line: int) -> None:
        self.modules.append(ModuleMapping(source, content, start_line))

    def shift(self, lines: int) -> None:
        """Move every recorded line down, e.g. after a header is prepended."""
        for mapping in self.modules:
            mapping.start_line += lines

    def mappings(self) -> str:
        by_line = {m.start_line: index for index, m in enumerate(self.modules)}
        if not by_line:
            return ""
        groups: List[str] = []
        previous_source = 0
        for line in range(1, max(by_line) + 1):
            index = by_line.get(line)
            if index is None:
                groups.append("")
                continue
            # generated column, source index, original line, original column
            groups.append(
                encode_vlq(0) + encode_vlq(index - previous_source) + encode_vlq(0) + encode_vlq(0)
            )
            previous_source = index
        return ";".join(groups)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": SOURCE_MAP_VERSION,
            "file": self.output_file,
            "sources": [m.source for m in self.modules],
            "sourcesContent": [m.content for m in self.modules],
            "names": [],
            "mappings": self.mappings(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def inline_comment(self) -> str:
        encoded = base64.b64encode(json.dumps(self.to_dict()).encode("utf-8")).decode("ascii")
        return f"{SOURCE_MAP_COMMENT_PREFIX}{SOURCE_MAP_DATA_URI_PREFIX}{encoded}"

    @staticmethod
    def external_comment(map_name: str) -> str:
        return f"{SOURCE_MAP_COMMENT_PREFIX}{map_name}"
