"""
Pytest configuration and shared fixtures for all jsbundler tests.

The lexer grammar is compiled once per process, so lexer-backed helpers are
session-scoped. Anything that touches the filesystem gets a fresh tmp_path.
"""

import sys
import pytest
from pathlib import Path
from typing import Dict

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from jsbundler.compiler.driver import BundleDriver
from jsbundler.frontend.lexer import Lexer
from jsbundler.frontend.scanner import ImportExportScanner


# =============================================================================
# Session-scoped fixtures (shared across all tests)
# =============================================================================

@pytest.fixture(scope="session")
def session_driver():
    """
    Session-scoped driver shared across ALL tests.

    The driver is stateless: every build() creates a fresh BuildSession.
    """
    return BundleDriver()


@pytest.fixture(scope="session")
def lexer():
    return Lexer()


@pytest.fixture(scope="session")
def scanner(lexer):
    return ImportExportScanner(lexer)


@pytest.fixture(scope="class")
def driver(session_driver):
    """Class-scoped driver - returns the session driver (stateless, safe to share)."""
    return session_driver


# =============================================================================
# Helper fixtures
# =============================================================================

@pytest.fixture
def project(tmp_path):
    """
    Factory that lays out a project under tmp_path and returns its config.

    Usage:
        config = project({"src/main.js": "..."}, metadata={...}, options={...})
    """
    from tests.test_utils import make_config, write_project

    def _project(files: Dict[str, str], **overrides) -> "BundleConfig":
        write_project(tmp_path, files)
        return make_config(tmp_path, **overrides)

    return _project


@pytest.fixture
def build_project(project, session_driver):
    """Factory: lay out a project and build it in one step."""
    def _build(files: Dict[str, str], **overrides):
        config = project(files, **overrides)
        return config, session_driver.build(config)

    return _build


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Register custom markers for test organization."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "requires_node: needs a node executable on PATH"
    )
