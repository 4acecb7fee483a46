"""Developer tasks powered by Invoke."""

from __future__ import annotations

import os
import pathlib
import subprocess
from typing import Iterable

from invoke import task

ROOT = pathlib.Path(__file__).parent.resolve()
ENV = {**os.environ}
RESULTS_DIR = ROOT / "results"


def _run(command: Iterable[str] | str) -> None:
    if isinstance(command, str):
        cmd = command
    else:
        cmd = " ".join(command)
    subprocess.run(cmd, shell=True, check=True, cwd=ROOT, env=ENV)


def _ensure_results_dir() -> None:
    RESULTS_DIR.mkdir(exist_ok=True)


@task
def tests(_context):
    """Run test suite without coverage (quick feedback)."""
    _ensure_results_dir()
    _run(["uv", "run", "pytest", "tests/"])


@task
def unit(_context):
    """Run only the domain and adapter unit tests."""
    _run(["uv", "run", "pytest", "tests/unit"])


@task
def coverage(_context):
    """Run tests under coverage and generate reports."""
    _ensure_results_dir()
    _run(["uv", "run", "coverage", "erase"])
    _run(
        [
            "uv",
            "run",
            "coverage",
            "run",
            "-m",
            "pytest",
            "tests/",
            "--junitxml=results/pytest.xml",
        ]
    )
    _run(["uv", "run", "coverage", "combine"])
    _run(["uv", "run", "coverage", "report"])
    _run(["uv", "run", "coverage", "html", "-d", "results/htmlcov"])


@task
def lint(_context):
    """Run formatting and type checks."""
    _run(["uv", "run", "black", "--check", "src", "tests"])
    _run(["uv", "run", "mypy", "src"])


@task
def serve(_context, transport="stdio", storage_dir=""):
    """Start the MCP server (use storage_dir=':memory:' for a throwaway registry)."""
    command = ["uv", "run", "element-mcp", "--transport", transport]
    if storage_dir:
        command += ["--storage-dir", f"'{storage_dir}'"]
    _run(command)


@task
def build(_context):
    """Build distribution artifacts."""
    _run(["uv", "build"])
