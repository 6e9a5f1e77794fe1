"""
Tests for the command-line entry point and its exit codes.
"""

import json

import pytest
from tests.test_utils import strip_ansi, write_project
from jsbundler.__main__ import main

CONFIG = """\
entry: src/main.js
output: dist/app.user.js
metadata:
  name: CLI Test
  version: 0.1.0
  description: CLI test script
  match: https://example.com/*
  grant: none
  run_at: document-end
options:
  syntax_check: builtin
development:
  output: dist/app.dev.user.js
"""

SOURCES = {
    "src/main.js": "import { greet } from './greet';\ngreet('world');\n",
    "src/greet.js": "export function greet(name) {\n  console.log('hello ' + name);\n}\n",
}


@pytest.fixture
def cli_project(tmp_path):
    write_project(tmp_path, dict(SOURCES, **{"build.yml": CONFIG}))
    return tmp_path


class TestMain:

    def test_success(self, cli_project, capsys):
        assert main([str(cli_project / "build.yml"), "-q"]) == 0
        out = capsys.readouterr().out
        assert "dist/app.user.js" in out
        assert "2 module(s)" in out
        assert (cli_project / "dist" / "app.user.js").is_file()

    def test_dev_output(self, cli_project):
        assert main([str(cli_project / "build.yml"), "--dev", "-q"]) == 0
        assert (cli_project / "dist" / "app.dev.user.js").is_file()

    def test_overrides(self, cli_project):
        code = main([
            str(cli_project / "build.yml"), "-q",
            "--output", "out/x.user.js", "--minify", "--sourcemap", "external", "--report",
        ])
        assert code == 0
        out_dir = cli_project / "out"
        assert sorted(p.name for p in out_dir.iterdir()) == ["x.stats.json", "x.user.js", "x.user.js.map"]
        report = json.loads((out_dir / "x.stats.json").read_text(encoding="utf-8"))
        assert report["config"]["minify"] is True

    def test_build_failure_exit_1(self, cli_project, capsys):
        write_project(cli_project, {"src/main.js": "import './missing';\n"})
        assert main([str(cli_project / "build.yml"), "-q"]) == 1
        err = strip_ansi(capsys.readouterr().err)
        assert "error[E0432]: module not found: './missing' imported by src/main.js" in err
        assert not (cli_project / "dist" / "app.user.js").exists()

    def test_config_error_exit_2(self, tmp_path, capsys):
        write_project(tmp_path, {"build.yml": "entry: a.js\n"})
        assert main([str(tmp_path / "build.yml")]) == 2
        assert "error[E0004]" in capsys.readouterr().err

    def test_invalid_config_value_exit_2(self, cli_project):
        write_project(cli_project, {"build.yml": CONFIG.replace("syntax_check: builtin", "max_depth: 0")})
        assert main([str(cli_project / "build.yml"), "-q"]) == 2

    def test_bad_argument(self, cli_project):
        with pytest.raises(SystemExit) as excinfo:
            main([str(cli_project / "build.yml"), "--sourcemap", "sideways"])
        assert excinfo.value.code == 2
