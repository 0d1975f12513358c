import sys
import os
import shutil
import tempfile
from tempfile import TemporaryDirectory
import pytest
# Ensure the project root is on sys.path for all tests
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

SRC_DIR = os.path.join(os.path.dirname(__file__), "src")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with TemporaryDirectory() as dir_path:
        yield dir_path


@pytest.fixture
def example_dir(temp_dir):
    """A temporary copy of tests/src, so generated files never land in the source tree."""
    for name in os.listdir(SRC_DIR):
        if name.endswith(".py"):
            shutil.copy(os.path.join(SRC_DIR, name), os.path.join(temp_dir, name))
    yield temp_dir


@pytest.fixture(autouse=True)
def restore_sys_modules():
    """Generated modules and the sources they import are loaded by file; forget them after each test."""
    before = set(sys.modules)
    yield
    temp_root = os.path.realpath(tempfile.gettempdir())
    for name in set(sys.modules) - before:
        module_file = getattr(sys.modules[name], "__file__", None) or ""
        if module_file and os.path.realpath(module_file).startswith(temp_root):
            del sys.modules[name]
