"""
Tests for output syntax checks and heuristic warnings.
"""

import pytest
from tests.test_utils import requires_node
from jsbundler.output.validator import (
    BuiltinSyntaxChecker,
    NodeSyntaxChecker,
    OutputValidator,
    select_syntax_checker,
)
from jsbundler.shared.errors import ConfigError, OutputSyntaxError


@pytest.fixture(scope="module")
def builtin():
    return BuiltinSyntaxChecker()


class TestBuiltinChecker:

    @pytest.mark.parametrize("code", [
        "(function () { var a = [1, 2, { b: 3 }]; })();\n",
        "const s = '})]';\nconst t = `${'{'}`;\n",
        "// unmatched ) in a comment\n/* and ] here */\n",
        "const re = /\\(/;\n",
        "if (/[{}\\]]/.test(s)) { run(); }\n",
        "const isUrl = /^https?:\\/\\//;\n",
        "",
    ])
    def test_valid(self, builtin, code):
        assert builtin.check(code, "bundle.js") is None

    def test_unclosed_brace(self, builtin):
        problem = builtin.check("function f() {\n  return 1;\n", "bundle.js")
        assert problem.message == "unclosed '{'"
        assert (problem.line, problem.column) == (1, 14)

    def test_unexpected_closer(self, builtin):
        problem = builtin.check("a();\n}\n", "bundle.js")
        assert problem.message == "unexpected '}'"
        assert problem.line == 2

    def test_mismatched_closer(self, builtin):
        problem = builtin.check("f(a, [b)\n", "bundle.js")
        assert problem.message == "')' does not match '[' opened at line 1"

    def test_unterminated_string(self, builtin):
        problem = builtin.check("const s = 'oops;\n", "bundle.js")
        assert problem.message == "unterminated string literal"

    def test_unterminated_template(self, builtin):
        problem = builtin.check("const s = `oops;\n", "bundle.js")
        assert problem.message == "unterminated template literal"

    def test_unterminated_block_comment(self, builtin):
        problem = builtin.check("a();\n/* never closed\n", "bundle.js")
        assert problem.message == "unterminated block comment"
        assert problem.line == 2


class TestSelection:

    def test_off(self):
        assert select_syntax_checker("off") is None

    def test_builtin(self):
        assert isinstance(select_syntax_checker("builtin"), BuiltinSyntaxChecker)

    def test_node_missing(self, monkeypatch):
        monkeypatch.setattr("jsbundler.output.validator.shutil.which", lambda name: None)
        with pytest.raises(ConfigError, match="no node executable"):
            select_syntax_checker("node")
        assert isinstance(select_syntax_checker("auto"), BuiltinSyntaxChecker)

    def test_auto_prefers_node(self, monkeypatch):
        monkeypatch.setattr("jsbundler.output.validator.shutil.which", lambda name: "/usr/bin/node")
        checker = select_syntax_checker("auto")
        assert isinstance(checker, NodeSyntaxChecker)
        assert checker.node_path == "/usr/bin/node"


class TestOutputValidator:

    def test_check_syntax_raises_with_location(self):
        validator = OutputValidator("builtin")
        with pytest.raises(OutputSyntaxError) as excinfo:
            validator.check_syntax("ok();\nbroken(\n", "dist/app.user.js")
        err = excinfo.value
        assert err.message == "generated bundle does not compile: unclosed '('"
        assert err.location.file == "dist/app.user.js"
        assert err.location.line == 2
        assert err.help == "checked with the builtin backend"

    def test_off_accepts_anything(self):
        validator = OutputValidator("off")
        assert validator.backend == "off"
        validator.check_syntax("((((", "x.js")

    def test_brackets_in_regex_do_not_fail_the_build(self):
        validator = OutputValidator("builtin")
        code = "const open = /[(\\[{]/;\nconst close = /\\)/g;\n"
        validator.check_syntax(code, "x.js")
        assert validator.heuristic_warnings(code) == []


class TestHeuristics:

    @pytest.fixture
    def validator(self):
        return OutputValidator("off", max_console_calls=2)

    def test_clean(self, validator):
        assert validator.heuristic_warnings("const x = require('a');\nx.run();\n") == []

    def test_leftover_import_and_export(self, validator):
        warnings = validator.heuristic_warnings("import a from './a';\nexport const b = 1;\n")
        assert "'export' statement found in output; it may not have been transformed" in warnings
        assert "'import' statement found in output; it may not have been transformed" in warnings

    def test_import_lookalikes_ignored(self, validator):
        code = "import('./lazy');\nimport.meta;\nobj.import;\nconst o = { import: 1 };\nconst s = 'import x';\n"
        assert validator.heuristic_warnings(code) == []

    def test_console_log_limit(self, validator):
        code = "console.log(1);\nconsole.log(2);\nconsole.log(3);\nconst s = 'console.log(4)';\n"
        assert validator.heuristic_warnings(code) == [
            "3 console.log calls found (limit 2); consider removing them from production builds",
        ]

    def test_brace_and_paren_counts(self, validator):
        warnings = validator.heuristic_warnings("f(() => {\n")
        assert "brace mismatch: 1 opening vs 0 closing" in warnings
        assert "parenthesis mismatch: 2 opening vs 1 closing" in warnings

    def test_interval_with_clear(self, validator):
        code = "const id = setInterval(f, 5);\nclearInterval(id);\n"
        assert validator.heuristic_warnings(code) == []


@requires_node
class TestNodeChecker:

    def test_valid(self):
        validator = OutputValidator("node")
        validator.check_syntax("(function () { return 1; })();\n", "ok.js")

    def test_reports_line(self):
        validator = OutputValidator("node")
        with pytest.raises(OutputSyntaxError) as excinfo:
            validator.check_syntax("const a = 1;\nconst = 2;\n", "bad.js")
        assert excinfo.value.location is not None
        assert excinfo.value.location.line == 2
