"""
Tests for the userscript metadata header.
"""

from datetime import datetime, timezone

import pytest
from jsbundler.compiler.config import MetadataConfig
from jsbundler.output.template import (
    UserscriptTemplate,
    extract_metadata,
    is_valid_version,
)
from jsbundler.shared.errors import MetadataError

BUILD_DATE = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc)


def _template(**fields):
    data = {
        "name": "My Script",
        "namespace": "https://example.com",
        "version": "1.2.3",
        "description": "Does things",
        "match": ["https://example.com/*", "https://example.org/*"],
        "grant": ["GM_setValue", "GM_getValue"],
        "run_at": "document-idle",
    }
    data.update(fields)
    return UserscriptTemplate(MetadataConfig(**data), build_date=BUILD_DATE)


class TestHeader:

    def test_render(self):
        header = _template(noframes=True, require=["https://cdn.example/lib.js"]).render_header()
        assert header.split("\n") == [
            "// ==UserScript==",
            "// @name         My Script",
            "// @namespace    https://example.com",
            "// @version      1.2.3",
            "// @description  Does things",
            "// @match        https://example.com/*",
            "// @match        https://example.org/*",
            "// @grant        GM_setValue",
            "// @grant        GM_getValue",
            "// @run-at       document-idle",
            "// @require      https://cdn.example/lib.js",
            "// @noframes",
            "// @buildDate    2024-05-01T12:30:00Z",
            "// ==/UserScript==",
        ]

    def test_optional_fields_omitted(self):
        header = _template(description=None, run_at=None).render_header()
        assert "@description" not in header
        assert "@run-at" not in header
        assert "@noframes" not in header

    def test_custom_keys(self):
        header = _template(custom={"connect": ["api.example.com", "cdn.example.com"], "sandbox": "raw"}).render_header()
        assert "// @connect      api.example.com" in header
        assert "// @connect      cdn.example.com" in header
        assert "// @sandbox      raw" in header

    def test_url_keys(self):
        header = _template(update_url="https://u", download_url="https://d", support_url="https://s").render_header()
        assert "// @updateURL    https://u" in header
        assert "// @downloadURL  https://d" in header
        assert "// @supportURL   https://s" in header

    def test_header_line_count(self):
        template = _template()
        wrapped = template.wrap("code();\n")
        lines = wrapped.split("\n")
        assert lines[template.header_line_count()] == "code();"

    def test_wrap(self):
        wrapped = _template().wrap("code();\n\n")
        assert wrapped.startswith("// ==UserScript==\n")
        assert "// ==/UserScript==\n\ncode();\n\n// Build information\n" in wrapped
        assert wrapped.endswith("// Built at: 2024-05-01 12:30:00 UTC\n// Built with: jsbundler\n")


class TestValidate:

    def test_complete_metadata_has_no_warnings(self):
        assert _template().validate() == []

    @pytest.mark.parametrize("missing", ["name", "version"])
    def test_required_fields(self, missing):
        with pytest.raises(MetadataError, match=missing):
            _template(**{missing: None}).validate()

    def test_advisory_warnings(self):
        warnings = _template(description=None, version="v1", match=[], grant=[], run_at=None).validate()
        assert warnings == [
            "metadata has no description (@description)",
            "version 'v1' is neither semver nor dotted numeric",
            "no match rules set (@match or @include)",
            "no permissions set (@grant); use 'none' or the APIs the script needs",
            "no injection time set (@run-at)",
        ]

    def test_include_counts_as_match_rule(self):
        assert _template(match=[], include=["*://example.com/*"]).validate() == []

    @pytest.mark.parametrize("version,valid", [
        ("1.0.0", True),
        ("1.0.0-beta.1+build.5", True),
        ("2024.5", True),
        ("1", True),
        ("1.0.x", False),
        ("latest", False),
    ])
    def test_is_valid_version(self, version, valid):
        assert is_valid_version(version) is valid


class TestExtract:

    def test_round_trip_of_rendered_header(self):
        template = _template(noframes=True)
        meta = extract_metadata(template.wrap("x();"))
        assert meta["name"] == "My Script"
        assert meta["match"] == ["https://example.com/*", "https://example.org/*"]
        assert meta["grant"] == ["GM_setValue", "GM_getValue"]
        assert meta["noframes"] is True
        assert meta["buildDate"] == "2024-05-01T12:30:00Z"

    def test_stops_at_end_marker(self):
        text = "// ==UserScript==\n// @name A\n// ==/UserScript==\n// @name B\n"
        assert extract_metadata(text) == {"name": "A"}

    def test_no_header(self):
        assert extract_metadata("const a = 1;") == {}

    def test_static_alias(self):
        assert UserscriptTemplate.extract_metadata("// ==UserScript==\n// @version 2\n") == {"version": "2"}
