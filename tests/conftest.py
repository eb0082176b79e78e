"""
Global test configuration with support for different test types.
"""

import logging
import os
from pathlib import Path

import pytest

from prompt_orchestrator.config import ENV_PREFIX


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def isolate_orchestrator_env(request, monkeypatch):
    """Ensure a clean PROMPT_ORCHESTRATOR_* environment for each test.

    - Removes all PROMPT_ORCHESTRATOR_* variables and the DEBUG toggle
    - Leaves unrelated variables intact for stability

    Escape hatch: @pytest.mark.allow_env_pollution keeps the current env.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return

    for key in list(os.environ.keys()):
        if key.upper().startswith(ENV_PREFIX):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("DEBUG", raising=False)


@pytest.fixture(autouse=True)
def isolated_cwd(request, monkeypatch, tmp_path):
    """Run each test from an empty directory.

    Prevents a pyproject.toml in the working tree from feeding
    ``[tool.prompt_orchestrator]`` values into configuration tests.

    Escape hatch: @pytest.mark.allow_project_config keeps the real cwd.
    """
    if request.node.get_closest_marker("allow_project_config"):
        return
    workdir = tmp_path / "cwd_isolated"
    workdir.mkdir(parents=True, exist_ok=True)
    monkeypatch.chdir(workdir)


@pytest.fixture(autouse=True)
def quiet_third_party_logs():
    """Keep third-party loggers out of captured output."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)


# --- Test Environment Markers ---
def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "integration: Component integration tests with the reference collaborators",
        "contract: Behavioral guarantees of the orchestration pipeline",
        "slow: Tests that take >1 second",
        "allow_env_pollution: Keep PROMPT_ORCHESTRATOR_* variables for this test",
        "allow_project_config: Run from the real working directory",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# --- Core Fixtures ---


@pytest.fixture
def write_pyproject(tmp_path):
    """Write a pyproject.toml with the given content and return its directory."""

    def _write(content: str) -> Path:
        project_dir = tmp_path / "project"
        project_dir.mkdir(exist_ok=True)
        (project_dir / "pyproject.toml").write_text(content, encoding="utf-8")
        return project_dir

    return _write
