"""
Packager

Writes the finished artifact and its companions (external source map,
`.stats.json` report) and computes the build statistics.
"""

import gzip
import json
import logging
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..frontend.lexer import COMMENT_TYPES, IDENT, TRIVIA_TYPES, Lexer
from ..utils.config import DEFAULT_FILE_ENCODING, OUTPUT_FILE_MODE
from ..utils.io_utils import write_text_atomic

logger = logging.getLogger(__name__)

USERSCRIPT_SUFFIX = ".user.js"
REPORT_SUFFIX = ".stats.json"
MAP_SUFFIX = ".map"


@dataclass
class BuildStats:
    size: int
    lines: int
    characters: int
    functions: int
    classes: int
    comments: int
    modules: int
    gzip_size: int
    output_path: str
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def report_path_for(output_path: str) -> str:
    """`dist/app.user.js` -> `dist/app.stats.json`"""
    if output_path.endswith(USERSCRIPT_SUFFIX):
        return output_path[: -len(USERSCRIPT_SUFFIX)] + REPORT_SUFFIX
    return os.path.splitext(output_path)[0] + REPORT_SUFFIX


def map_path_for(output_path: str) -> str:
    return output_path + MAP_SUFFIX


class Packager:
    def __init__(self, lexer: Optional[Lexer] = None):
        self.lexer = lexer or Lexer()

    def compute_stats(self, content: str, output_path: str, module_count: int) -> BuildStats:
        tokens = self.lexer.tokenize(content)
        functions = classes = 0
        # Named declarations only, like `function foo` / `class Foo`
        significant = [t for t in tokens if t.type not in TRIVIA_TYPES]
        for current, nxt in zip(significant, significant[1:]):
            if current.type == IDENT and nxt.type == IDENT:
                if current.value == "function":
                    functions += 1
                elif current.value == "class":
                    classes += 1
        comments = sum(1 for t in tokens if t.type in COMMENT_TYPES)
        encoded = content.encode(DEFAULT_FILE_ENCODING)
        return BuildStats(
            size=len(encoded),
            lines=len(content.split("\n")),
            characters=len(content),
            functions=functions,
            classes=classes,
            comments=comments,
            modules=module_count,
            gzip_size=len(gzip.compress(encoded)),
            output_path=output_path,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    def write(
        self,
        content: str,
        output_path: str,
        module_count: int,
        source_map_json: Optional[str] = None,
        report_config: Optional[Dict[str, Any]] = None,
    ) -> BuildStats:
        """
        Write the external map when given, then the artifact (each atomically,
        mode 0o644), then the stats report when `report_config` is given. The
        map goes first so a failed map write leaves the previous artifact.
        """
        if source_map_json is not None:
            map_path = map_path_for(output_path)
            write_text_atomic(map_path, source_map_json, mode=OUTPUT_FILE_MODE)
            logger.info(f"Wrote {map_path}")
        write_text_atomic(output_path, content, mode=OUTPUT_FILE_MODE)
        logger.info(f"Wrote {output_path}")

        stats = self.compute_stats(content, output_path, module_count)
        if report_config is not None:
            self.write_report(stats, report_config)
        return stats

    def write_report(self, stats: BuildStats, config_summary: Dict[str, Any]) -> str:
        path = report_path_for(stats.output_path)
        report = {
            "buildTime": datetime.now(timezone.utc).isoformat(),
            "config": config_summary,
            "stats": stats.to_dict(),
            "performance": {
                "sizeKB": round(stats.size / 1024, 2),
                "gzipSizeKB": round(stats.gzip_size / 1024, 2),
                "compressionRatio": round(stats.gzip_size / stats.size, 3) if stats.size else 0,
            },
        }
        write_text_atomic(path, json.dumps(report, indent=2) + "\n", mode=OUTPUT_FILE_MODE)
        logger.info(f"Stats report written to {path}")
        return path

