"""
Tests for writing the artifact, its companions and the build statistics.
"""

import gzip
import json
import os

import pytest
from jsbundler.output.packager import (
    Packager,
    map_path_for,
    report_path_for,
)

ARTIFACT = (
    "// ==UserScript==\n"
    "// @name         X\n"
    "// ==/UserScript==\n"
    "\n"
    "/* block */\n"
    "function one() {}\n"
    "const two = function () {};\n"
    "class Three {}\n"
    "const s = 'function four class Five';\n"
)


@pytest.fixture
def packager(lexer):
    return Packager(lexer)


class TestPaths:

    def test_report_path(self):
        assert report_path_for("dist/app.user.js") == "dist/app.stats.json"
        assert report_path_for("dist/app.js") == "dist/app.stats.json"

    def test_map_path(self):
        assert map_path_for("dist/app.user.js") == "dist/app.user.js.map"


class TestStats:

    def test_counts(self, packager):
        stats = packager.compute_stats(ARTIFACT, "dist/app.user.js", module_count=3)
        assert stats.functions == 1
        assert stats.classes == 1
        assert stats.comments == 4
        assert stats.modules == 3
        assert stats.size == len(ARTIFACT.encode("utf-8"))
        assert stats.characters == len(ARTIFACT)
        assert stats.lines == ARTIFACT.count("\n") + 1
        assert stats.gzip_size == len(gzip.compress(ARTIFACT.encode("utf-8")))

    def test_size_counts_bytes(self, packager):
        stats = packager.compute_stats("const s = 'é';\n", "x.js", 1)
        assert stats.size == stats.characters + 1

    def test_to_dict(self, packager):
        data = packager.compute_stats("x();\n", "x.js", 1).to_dict()
        assert set(data) == {
            "size", "lines", "characters", "functions", "classes", "comments",
            "modules", "gzip_size", "output_path", "timestamp",
        }


class TestWrite:

    def test_writes_artifact_only(self, packager, tmp_path):
        out = tmp_path / "dist" / "app.user.js"
        stats = packager.write(ARTIFACT, str(out), module_count=1)
        assert out.read_text(encoding="utf-8") == ARTIFACT
        assert stats.output_path == str(out)
        assert sorted(os.listdir(out.parent)) == ["app.user.js"]

    @pytest.mark.skipif(os.name == "nt", reason="POSIX file modes")
    def test_file_mode(self, packager, tmp_path):
        out = tmp_path / "app.user.js"
        packager.write(ARTIFACT, str(out), module_count=1)
        assert (out.stat().st_mode & 0o777) == 0o644

    def test_external_map(self, packager, tmp_path):
        out = tmp_path / "app.user.js"
        packager.write(ARTIFACT, str(out), 1, source_map_json='{"version": 3}')
        assert (tmp_path / "app.user.js.map").read_text(encoding="utf-8") == '{"version": 3}'

    def test_failed_map_write_keeps_previous_artifact(self, packager, tmp_path):
        out = tmp_path / "app.user.js"
        out.write_text("old();\n", encoding="utf-8")
        (tmp_path / "app.user.js.map").mkdir()
        with pytest.raises(OSError):
            packager.write(ARTIFACT, str(out), 1, source_map_json='{"version": 3}')
        assert out.read_text(encoding="utf-8") == "old();\n"
        assert sorted(os.listdir(tmp_path)) == ["app.user.js", "app.user.js.map"]

    def test_report(self, packager, tmp_path):
        out = tmp_path / "app.user.js"
        packager.write(ARTIFACT, str(out), 2, report_config={"entry": "src/main.js"})
        report = json.loads((tmp_path / "app.stats.json").read_text(encoding="utf-8"))
        assert report["config"] == {"entry": "src/main.js"}
        assert report["stats"]["modules"] == 2
        assert report["stats"]["size"] == len(ARTIFACT.encode("utf-8"))
        assert set(report["performance"]) == {"sizeKB", "gzipSizeKB", "compressionRatio"}
        assert "buildTime" in report

    def test_overwrite_leaves_no_temp_files(self, packager, tmp_path):
        out = tmp_path / "app.user.js"
        packager.write("old();\n", str(out), 1)
        packager.write(ARTIFACT, str(out), 1)
        assert out.read_text(encoding="utf-8") == ARTIFACT
        assert os.listdir(tmp_path) == ["app.user.js"]

