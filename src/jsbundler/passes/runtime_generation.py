"""
Runtime Generation Pass: wraps the transformed modules in a module registry.

Output layout:

    (function () {
        'use strict';
        ...registry runtime...
        // Module: utils/dom (src/utils/dom.js)
        __define("utils/dom", function (module, exports, require) {
            ...module body...
        });
        ...one block per module, dependencies first...
        try { __require("main"); } catch (error) { console.error(...); }
    })();
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

from ..frontend.lexer import BLOCK_COMMENT, STRING, TEMPLATE, Lexer
from ..output.sourcemap import SourceMapTracker
from ..utils.config import (
    FACTORY_PARAMS,
    INDENT_UNIT,
    RUNTIME_DEFINE,
    RUNTIME_EXPORT_STAR,
    RUNTIME_IMPORT_DEFAULT,
    RUNTIME_REQUIRE,
)
from .base import BasePass, BuildSession
from .module_transform import ModuleTransformPass

logger = logging.getLogger(__name__)

_MULTILINE_TYPES = frozenset({STRING, TEMPLATE, BLOCK_COMMENT})

RUNTIME_PRELUDE = f"""\
(function () {{
    'use strict';

    var __modules = {{}};
    var __cache = {{}};
    var __hasOwn = Object.prototype.hasOwnProperty;

    function {RUNTIME_DEFINE}(id, factory) {{
        if (__hasOwn.call(__modules, id)) {{
            throw new Error('Module already defined: ' + id);
        }}
        __modules[id] = factory;
    }}

    function {RUNTIME_REQUIRE}(id) {{
        if (__hasOwn.call(__cache, id)) {{
            return __cache[id].exports;
        }}
        if (!__hasOwn.call(__modules, id)) {{
            throw new Error('Module not found: ' + id);
        }}
        var module = {{ id: id, exports: {{}} }};
        __modules[id].call(module.exports, module, module.exports, {RUNTIME_REQUIRE});
        __cache[id] = module;
        return module.exports;
    }}

    function {RUNTIME_IMPORT_DEFAULT}(exports) {{
        return exports && __hasOwn.call(exports, 'default') ? exports['default'] : exports;
    }}

    function {RUNTIME_EXPORT_STAR}(target, source) {{
        Object.keys(source).forEach(function (key) {{
            if (key !== 'default' && !__hasOwn.call(target, key)) {{
                target[key] = source[key];
            }}
        }});
    }}
"""


@dataclass
class WrappedModule:
    module_id: str
    source_path: str
    body: str
    original: str = ""


@dataclass
class GeneratedBundle:
    text: str
    module_start_lines: Dict[str, int] = field(default_factory=dict)

    @property
    def line_count(self) -> int:
        return self.text.count("\n") + (0 if self.text.endswith("\n") else 1)


class RuntimeGenerator:
    """Emits the registry runtime, one `__define` per module and the bootstrap."""

    def __init__(self, lexer: Optional[Lexer] = None):
        self.lexer = lexer or Lexer()

    def continuation_lines(self, body: str) -> Set[int]:
        """1-based lines that begin inside a multi-line string, template or comment."""
        lines: Set[int] = set()
        for token in self.lexer.tokenize(body):
            if token.type in _MULTILINE_TYPES and token.end_line > token.line:
                lines.update(range(token.line + 1, token.end_line + 1))
        return lines

    def indent_body(self, body: str, indent: str) -> List[str]:
        skip = self.continuation_lines(body)
        lines = body.split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        return [
            line if (number in skip or not line.strip()) else indent + line
            for number, line in enumerate(lines, start=1)
        ]

    def generate(
        self,
        modules: Sequence[WrappedModule],
        entry_id: str,
        tracker: Optional[SourceMapTracker] = None,
    ) -> GeneratedBundle:
        out: List[str] = RUNTIME_PRELUDE.rstrip("\n").split("\n")
        starts: Dict[str, int] = {}
        params = ", ".join(FACTORY_PARAMS)

        for module in modules:
            out.append("")
            out.append(f"{INDENT_UNIT}// Module: {module.module_id} ({module.source_path})")
            out.append(f"{INDENT_UNIT}{RUNTIME_DEFINE}({json.dumps(module.module_id)}, function ({params}) {{")
            start_line = len(out) + 1
            starts[module.module_id] = start_line
            if tracker is not None:
                tracker.add_module(module.source_path, module.original or module.body, start_line)
            out.extend(self.indent_body(module.body, INDENT_UNIT * 2))
            out.append(f"{INDENT_UNIT}}});")

        out.append("")
        out.append(f"{INDENT_UNIT}try {{")
        out.append(f"{INDENT_UNIT * 2}{RUNTIME_REQUIRE}({json.dumps(entry_id)});")
        out.append(f"{INDENT_UNIT}}} catch (error) {{")
        out.append(f"{INDENT_UNIT * 2}console.error('[bundle] Failed to start:', error);")
        out.append(f"{INDENT_UNIT}}}")
        out.append("})();")

        logger.debug(f"Generated runtime with {len(modules)} module(s), entry '{entry_id}'")
        return GeneratedBundle("\n".join(out) + "\n", starts)


class RuntimeGenerationPass(BasePass):
    requires = [ModuleTransformPass]

    def run(self, session: BuildSession) -> None:
        tracker = SourceMapTracker(os.path.basename(session.config.output_path))
        wrapped = [
            WrappedModule(
                module_id=session.module_ids[path],
                source_path=session.display(path),
                body=session.transformed[path],
                original=session.modules[path].raw_content,
            )
            for path in session.build_order
        ]
        bundle = RuntimeGenerator().generate(wrapped, session.entry_id, tracker)
        session.bundle = bundle.text
        session.source_map = tracker
        session.set_analysis(RuntimeGenerationPass, bundle)
