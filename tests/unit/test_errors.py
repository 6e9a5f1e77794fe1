#!/usr/bin/env python3
"""
Tests for diagnostic rendering and the build error hierarchy.
"""

import pytest
from tests.test_utils import strip_ansi
from jsbundler.shared.errors import (
    BundleError,
    CircularImportError,
    ConfigError,
    DuplicateModuleIdError,
    Error,
    ErrorReporter,
    MetadataError,
    OutputSyntaxError,
    ScanError,
    SourceDecodeError,
    UnresolvedModuleError,
)
from jsbundler.shared.source_location import SourceLocation


class TestErrorReporterFormatting:
    """Edge cases for the diagnostic formatter."""

    def test_location_none(self):
        err = Error(message="something failed", location=None, code="E0001")
        out = ErrorReporter({}).format_error(err, color=False)
        assert out.startswith("error[E0001]: something failed")
        assert "-->" not in out

    def test_file_not_in_source_files(self):
        loc = SourceLocation(file="src/missing.js", line=1, column=1)
        err = Error(message="oops", location=loc, code="E0432")
        out = ErrorReporter({}).format_error(err, color=False)
        assert "error[E0432]" in out
        assert " --> src/missing.js:1:1" in out

    def test_line_beyond_source(self):
        loc = SourceLocation(file="x.js", line=10, column=1)
        err = Error(message="bad", location=loc)
        out = ErrorReporter({"x.js": "const a = 1;\nconst b = 2;\n"}).format_error(err, color=False)
        assert "--> x.js:10:1" in out
        assert "10 | " in out

    def test_quotes_line_and_underlines_span(self):
        source = "const a = 1;\n\nimport { x } from './missing';\n"
        loc = SourceLocation(
            file="src/main.js", line=3, column=1, end_line=3, end_column=31,
        )
        err = Error(
            message="module not found: './missing' imported by src/main.js",
            location=loc,
            code="E0432",
            label="imported here",
            help="resolved to src/missing.js",
        )
        out = ErrorReporter({"src/main.js": source}).format_error(err, color=False)
        assert "3 | import { x } from './missing';" in out
        assert "^" * 30 + " imported here" in out
        assert "= help: resolved to src/missing.js" in out

    def test_guessed_span_without_end_column(self):
        loc = SourceLocation(file="f.js", line=1, column=7)
        err = Error(message="bad token", location=loc, label="here")
        out = ErrorReporter({"f.js": "const value = 1;"}).format_error(err, color=False)
        assert "1 | const value = 1;" in out
        assert "      ^^^^^ here" in out

    def test_warning_severity(self):
        err = Error(message="no match rules set", location=None, severity="warning")
        out = ErrorReporter({}).format_error(err, color=False)
        assert out.startswith("warning: no match rules set")

    def test_color_output_has_escape_codes(self):
        err = Error(message="boom", location=None, code="E0002")
        out = ErrorReporter({}).format_error(err, color=True)
        assert "\x1b[" in out
        assert strip_ansi(out) == "error[E0002]: boom"

    def test_format_all_errors_summary(self):
        reporter = ErrorReporter({})
        reporter.report_error("first")
        reporter.report_error("second")
        out = reporter.format_all_errors(color=False)
        assert "error: first" in out
        assert "error: second" in out
        assert out.endswith("aborting due to 2 previous errors")


class TestErrorReporterCollection:

    def test_report_exception_keeps_code_and_annotations(self):
        reporter = ErrorReporter({})
        exc = UnresolvedModuleError("module not found: 'x'", help="check the path", label="imported here")
        reporter.report_exception(exc)
        assert reporter.has_errors()
        error = reporter.errors[0]
        assert error.code == "E0432"
        assert error.help == "check the path"
        assert error.label == "imported here"

    def test_warnings_do_not_count_as_errors(self):
        reporter = ErrorReporter({})
        reporter.report_warning("one")
        reporter.report_warning("two")
        assert not reporter.has_errors()
        assert reporter.warning_messages() == ["one", "two"]
        assert all(w.severity == "warning" for w in reporter.warnings)

    def test_print_errors_writes_to_stderr(self, capsys):
        reporter = ErrorReporter({})
        reporter.report_warning("careful")
        reporter.report_error("broken", code="E0001")
        reporter.print_errors()
        err = strip_ansi(capsys.readouterr().err)
        assert "warning: careful" in err
        assert "error[E0001]: broken" in err
        assert "aborting due to 1 previous error" in err


class TestBundleErrors:

    @pytest.mark.parametrize("cls,code", [
        (BundleError, "E0000"),
        (UnresolvedModuleError, "E0432"),
        (DuplicateModuleIdError, "E0428"),
        (ScanError, "E0001"),
        (OutputSyntaxError, "E0002"),
        (MetadataError, "E0003"),
        (ConfigError, "E0004"),
        (SourceDecodeError, "E0005"),
    ])
    def test_codes(self, cls, code):
        assert cls.code == code
        assert issubclass(cls, BundleError)

    def test_circular_import_message_lists_chain(self):
        err = CircularImportError(["src/a.js", "src/b.js", "src/a.js"])
        assert err.chain == ("src/a.js", "src/b.js", "src/a.js")
        assert err.message == "circular import detected: src/a.js -> src/b.js -> src/a.js"
        assert err.code == "E0391"
        assert err.note is not None

    def test_str_with_location(self):
        err = ScanError("expected `from`", SourceLocation("src/a.js", 2, 5))
        assert str(err) == "error[E0001]: expected `from`\n --> src/a.js:2:5"
        assert str(ScanError("plain")) == "plain"
