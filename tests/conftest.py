import pytest
import tempfile
import os
import sys
from typing import Dict
import logging

# Configure logging for tests - Windows safe
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


@pytest.fixture
def temp_project_dir():
    """Create a temporary directory for individual test projects"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


def create_tree(root: str, structure: Dict[str, object]) -> str:
    """
    Create files below root from a {relative_path: content} mapping.

    str content is written as UTF-8 text, bytes content as-is, and a None
    value creates an (empty) directory instead of a file.
    """
    for path, content in structure.items():
        full_path = os.path.join(root, path.replace("/", os.sep))
        if content is None:
            os.makedirs(full_path, exist_ok=True)
            continue
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        if isinstance(content, bytes):
            with open(full_path, "wb") as f:
                f.write(content)
        else:
            with open(full_path, "w", encoding="utf-8", newline="") as f:
                f.write(content)
    return root


@pytest.fixture
def make_tree():
    """Expose create_tree to tests"""
    return create_tree


@pytest.fixture
def sample_repo():
    """Create a small repository with mixed file types and nesting"""
    with tempfile.TemporaryDirectory() as tmpdir:
        create_tree(
            tmpdir,
            {
                "b.txt": "second\n",
                "a.txt": "first\n",
                "src/main.cpp": "int main() { return 0; }\n",
                "src/util.hpp": "#pragma once\n",
                "src/lib/index.js": "module.exports = {};\n",
                "config/settings.json": '{"debug": true}',
                "docs/empty": None,
            },
        )
        yield tmpdir


@pytest.fixture
def git_repo(sample_repo):
    """sample_repo with a .git directory at its root"""
    create_tree(sample_repo, {".git/HEAD": "ref: refs/heads/main\n"})
    return sample_repo


def validate_report_structure(content: str) -> Dict[str, object]:
    """Validate the Markdown structure of a directory report"""
    result = {
        "has_title": "# Repository Context\n" in content,
        "has_location": "## File System Location\n" in content,
        "has_structure": "## Structure\n```\n" in content,
        "file_count": content.count("### File: "),
        "balanced_fences": content.count("```") % 2 == 0,
        "errors": [],
    }

    if not result["has_title"]:
        result["errors"].append("Missing repository title")
    if not result["has_location"]:
        result["errors"].append("Missing file system location section")
    if not result["has_structure"]:
        result["errors"].append("Missing structure section")
    if not result["balanced_fences"]:
        result["errors"].append("Unbalanced code fences")

    result["is_valid"] = len(result["errors"]) == 0
    return result


@pytest.fixture
def report_validator():
    return validate_report_structure


# Windows-compatible test markers
def pytest_configure(config):
    config.addinivalue_line("markers", "critical: marks tests as critical (must pass)")
    config.addinivalue_line(
        "markers", "important: marks tests as important (should pass)"
    )
    config.addinivalue_line(
        "markers", "performance: marks tests as performance-related"
    )
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "slow: marks tests as slow running")
    config.addinivalue_line("markers", "skip_on_windows: skip test on Windows")


def pytest_runtest_setup(item):
    """Skip certain tests on Windows"""
    if "skip_on_windows" in [marker.name for marker in item.iter_markers()]:
        if sys.platform.startswith("win"):
            pytest.skip("Skipped on Windows")
