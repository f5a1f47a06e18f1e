"""
Pytest and unittest configuration for the viewport core tests.

Adds project src/ and tests/ to sys.path so tests can import from core, utils,
gui, tools and the fake rendering backend.
Run tests from project root with:
  - pytest
  - python -m unittest discover -s tests -p "test_*.py"
  - python tests/run_tests.py
"""

import sys
import os

import pytest

# Add src to path so that "from core.xxx" and "from utils.xxx" work
_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_src_dir = os.path.join(_project_root, "src")
_tests_dir = os.path.join(_project_root, "tests")
for _path in (_src_dir, _tests_dir):
    if _path not in sys.path:
        sys.path.insert(0, _path)


def pytest_configure(config):
    config.addinivalue_line("markers", "qt: mark test as requiring a Qt application object (PySide6)")


@pytest.fixture(scope="session", autouse=True)
def qapp():
    """Provide one QCoreApplication per test session; QTimer needs it."""
    from fake_rendering_backend import ensure_qt_app

    return ensure_qt_app()
