"""
Tests for rewriting import/export statements into registry calls.
"""

import pytest
from jsbundler.analysis.module_system.module_info import ModuleRecord
from jsbundler.analysis.module_system.path_resolver import PathResolver
from jsbundler.passes.module_transform import ModuleTransformer, member, property_key

ROOT = "/p"
MODULE_IDS = {
    "/p/src/main.js": "main",
    "/p/src/a.js": "a",
    "/p/src/utils/dom.js": "utils/dom",
}


@pytest.fixture(scope="module")
def transformer():
    return ModuleTransformer(PathResolver("src", root_dir=ROOT), MODULE_IDS)


@pytest.fixture
def transform(transformer, scanner):
    def _transform(source, path="/p/src/main.js"):
        scan = scanner.scan(source, "src/main.js")
        record = ModuleRecord(path, source, scan.imports, scan.exports, ())
        return transformer.transform(record)
    return _transform


class TestImports:

    def test_side_effect(self, transform):
        assert transform("import './a';\n") == 'require("a");\n'

    def test_default(self, transform):
        assert transform("import A from './a';\n") == 'const A = __importDefault(require("a"));\n'

    def test_named(self, transform):
        out = transform("import { x, y as z, 'my-name' as n } from './a';\n")
        assert out == 'const { x, y: z, "my-name": n } = require("a");\n'

    def test_namespace(self, transform):
        out = transform("import * as dom from './utils/dom';\n")
        assert out == 'const dom = require("utils/dom");\n'

    def test_default_with_namespace(self, transform):
        out = transform("import A, * as ns from './a';\n")
        assert out == 'const ns = require("a"); const A = __importDefault(ns);\n'

    def test_default_with_named(self, transform):
        out = transform("import A, { b } from './a';\n")
        assert out == 'const A = __importDefault(require("a")); const { b } = require("a");\n'

    def test_empty_named_list(self, transform):
        assert transform("import {} from './a';\n") == 'require("a");\n'

    def test_bare_specifier_via_source_root(self, transform):
        out = transform("import { q } from 'utils/dom';\n", path="/p/src/a.js")
        assert out == 'const { q } = require("utils/dom");\n'

    def test_preserves_line_count(self, transform):
        source = "import {\n  x,\n  y,\n} from './a';\nuse(x, y);\n"
        out = transform(source)
        assert out.count("\n") == source.count("\n")
        assert out.split("\n")[4] == "use(x, y);"


class TestExports:

    def test_declaration(self, transform):
        out = transform("export function foo() { return 1; }\n")
        assert out == " function foo() { return 1; }\nexports.foo = foo;\n"

    def test_const_declaration(self, transform):
        out = transform("export const a = 1, b = 2;\n")
        assert out == " const a = 1, b = 2;\nexports.a = a;\nexports.b = b;\n"

    def test_default_expression(self, transform):
        out = transform("export default 42;\n")
        assert out == "exports.default = 42;\n"

    def test_default_named_declaration(self, transform):
        out = transform("export default class App {}\n")
        assert out == " class App {}\nexports.default = App;\n"

    def test_named_list(self, transform):
        out = transform("const a = 1;\nexport { a, a as b, a as default };\n")
        assert out == (
            "const a = 1;\n\n"
            "exports.a = a;\nexports.b = a;\nexports.default = a;\n"
        )

    def test_exported_string_name(self, transform):
        out = transform("const a = 1;\nexport { a as 'kebab-name' };")
        assert out.endswith('exports["kebab-name"] = a;\n')

    def test_reexport_all(self, transform):
        out = transform("export * from './a';\n")
        assert out == '\n__exportStar(exports, require("a"));\n'

    def test_reexport_named(self, transform):
        out = transform("export { x as y } from './a';\n")
        assert out == '\nexports.y = require("a").x;\n'

    def test_reexport_namespace(self, transform):
        out = transform("export * as helpers from './a';\n")
        assert out == '\nexports.helpers = require("a");\n'

    def test_epilogue_order(self, transform):
        source = (
            "export default function main() {}\n"
            "export const v = 1;\n"
            "export { w } from './a';\n"
            "export * from './utils/dom';\n"
        )
        out = transform(source)
        epilogue = out.split("\n")[4:-1]
        assert epilogue == [
            '__exportStar(exports, require("utils/dom"));',
            'exports.w = require("a").w;',
            "exports.v = v;",
            "exports.default = main;",
        ]

    def test_module_exports_never_reassigned(self, transform):
        out = transform("export default {};\nexport const x = 1;\n")
        assert "module.exports" not in out


class TestHelpers:

    def test_member(self):
        assert member("exports", "foo") == "exports.foo"
        assert member("exports", "a-b") == 'exports["a-b"]'

    def test_property_key(self):
        assert property_key("foo") == "foo"
        assert property_key("x y") == '"x y"'
