"""
Module Transform Pass: Rewrites ES-module statements into registry calls.

Imports become `require("id")` lookups, exports become assignments on the
module's `exports` object. `module.exports` itself is never reassigned, so a
default export sits next to the named ones:

    export default App;          ->  exports.default = App;
    export function foo() {}     ->  function foo() {}   ...   exports.foo = foo;

Every replacement keeps the newlines of the text it replaces, so line numbers
inside a module are unchanged by the rewrite.
"""

import json
import logging
import os
from typing import Dict, List, Tuple

from ..analysis.module_system.module_info import ModuleRecord
from ..analysis.module_system.path_resolver import PathResolver
from ..frontend.lexer import is_identifier_name
from ..shared.nodes import (
    NAMESPACE_NAME,
    ExportDescriptor,
    ExportKind,
    ImportDescriptor,
    ImportKind,
)
from ..utils.config import RUNTIME_EXPORT_STAR, RUNTIME_IMPORT_DEFAULT
from .base import BasePass, BuildSession
from .module_ids import ModuleIdPass

logger = logging.getLogger(__name__)


def member(target: str, name: str) -> str:
    """`target.name`, or bracket access when name is not an identifier."""
    if is_identifier_name(name):
        return f"{target}.{name}"
    return f"{target}[{json.dumps(name)}]"


def property_key(name: str) -> str:
    return name if is_identifier_name(name) else json.dumps(name)


def _keep_newlines(replacement: str, original: str) -> str:
    return replacement + "\n" * original.count("\n")


class ModuleTransformer:
    """Rewrites one module at a time; needs the resolver and final module ids."""

    def __init__(self, resolver: PathResolver, module_ids: Dict[str, str]):
        self.resolver = resolver
        self.module_ids = module_ids

    def _require(self, specifier: str, importer: str) -> str:
        target = self.resolver.resolve(specifier, os.path.dirname(importer))
        return f"require({json.dumps(self.module_ids[target])})"

    def transform(self, record: ModuleRecord) -> str:
        source = record.raw_content
        edits: List[Tuple[int, int, str]] = []
        star: List[str] = []
        forwarded: List[str] = []
        local: List[str] = []
        default: List[str] = []

        for descriptor in record.imports:
            edits.append((descriptor.span.start, descriptor.span.end,
                          self._rewrite_import(descriptor, record.canonical_path)))

        for descriptor in record.exports:
            replacement = self._rewrite_export(
                descriptor, record.canonical_path, star, forwarded, local, default,
            )
            edits.append((descriptor.span.start, descriptor.span.end, replacement))

        body = self._apply(source, edits)
        epilogue = star + forwarded + local + default
        if epilogue:
            if not body.endswith("\n"):
                body += "\n"
            body += "\n".join(epilogue) + "\n"
        return body

    def _apply(self, source: str, edits: List[Tuple[int, int, str]]) -> str:
        pieces: List[str] = []
        cursor = 0
        for start, end, replacement in sorted(edits):
            if start < cursor:
                raise RuntimeError(f"Overlapping rewrite at offset {start}")
            pieces.append(source[cursor:start])
            pieces.append(_keep_newlines(replacement, source[start:end]))
            cursor = end
        pieces.append(source[cursor:])
        return "".join(pieces)

    def _rewrite_import(self, descriptor: ImportDescriptor, importer: str) -> str:
        require = self._require(descriptor.specifier, importer)
        if descriptor.kind == ImportKind.SIDE_EFFECT:
            return f"{require};"

        statements: List[str] = []
        namespace = descriptor.namespace_binding
        default = descriptor.default_binding
        named = descriptor.named_bindings

        if namespace is not None:
            statements.append(f"const {namespace.local} = {require};")
            require = namespace.local
        if default is not None:
            statements.append(
                f"const {default.local} = {RUNTIME_IMPORT_DEFAULT}({require});"
            )
        if named:
            fields = ", ".join(
                b.local if b.imported == b.local else f"{property_key(b.imported)}: {b.local}"
                for b in named
            )
            statements.append(f"const {{ {fields} }} = {require};")
        if not statements:
            statements.append(f"{require};")
        return " ".join(statements)

    def _rewrite_export(
        self,
        descriptor: ExportDescriptor,
        exporter: str,
        star: List[str],
        forwarded: List[str],
        local: List[str],
        default: List[str],
    ) -> str:
        if descriptor.kind == ExportKind.DECLARATION:
            for binding in descriptor.bindings:
                local.append(f"{member('exports', binding.exported)} = {binding.local};")
            return ""

        if descriptor.kind == ExportKind.DEFAULT:
            name = descriptor.bindings[0].local
            if name is None:
                return "exports.default ="
            default.append(f"exports.default = {name};")
            return ""

        if descriptor.kind == ExportKind.REEXPORT_ALL:
            star.append(f"{RUNTIME_EXPORT_STAR}(exports, {self._require(descriptor.source, exporter)});")
            return ""

        if descriptor.source is not None:
            require = self._require(descriptor.source, exporter)
            for binding in descriptor.bindings:
                value = require if binding.local == NAMESPACE_NAME else member(require, binding.local)
                forwarded.append(f"{member('exports', binding.exported)} = {value};")
            return ""

        for binding in descriptor.bindings:
            local.append(f"{member('exports', binding.exported)} = {binding.local};")
        return ""


class ModuleTransformPass(BasePass):
    requires = [ModuleIdPass]

    def run(self, session: BuildSession) -> None:
        transformer = ModuleTransformer(session.resolver, session.module_ids)
        for path in session.build_order:
            session.transformed[path] = transformer.transform(session.modules[path])
        logger.debug(f"Transformed {len(session.transformed)} module(s)")
