"""Shared fixtures for suiteshard tests."""

from __future__ import annotations

import sys
import textwrap
from typing import TYPE_CHECKING

import pytest

from suiteshard.config import EngineConfig

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


# ── File creation helpers ────────────────────────────────────────


def make_files(root: Path, rel_paths: list[str]) -> None:
    """Create empty files (with parent directories) under *root*."""
    for rel in rel_paths:
        f = root / rel
        f.parent.mkdir(parents=True, exist_ok=True)
        f.touch()


def write_declaration(root: Path, suites: dict[str, list[str]], **root_attrs: str) -> Path:
    """Write a ``phpunit.xml`` declaring *suites* under *root*."""
    attrs = "".join(f' {k}="{v}"' for k, v in root_attrs.items())
    body = []
    for name, directories in suites.items():
        entries = "".join(
            f'\n      <directory suffix="Test.php">{d}</directory>' for d in directories
        )
        body.append(f'    <testsuite name="{name}">{entries}\n    </testsuite>')
    xml = (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f"<phpunit{attrs}>\n  <testsuites>\n" + "\n".join(body) + "\n  </testsuites>\n</phpunit>\n"
    )
    path = root / "phpunit.xml"
    path.write_text(xml, encoding="utf-8")
    return path


# ── Fake test-execution engine ───────────────────────────────────

_ENGINE_TEMPLATE = """\
import os
import sys
import time
import xml.etree.ElementTree as ET

EXIT_CODES = {exit_codes!r}
DELAYS = {delays!r}
BARRIER_DIR = {barrier_dir!r}
SHARD_COUNT = {shard_count!r}

args = sys.argv[1:]
config = args[args.index("--configuration") + 1]
suite = args[args.index("--testsuite") + 1]
index = int(suite.rsplit("-", 1)[1])

status = EXIT_CODES.get(index, 0)

if BARRIER_DIR:
    open(os.path.join(BARRIER_DIR, "started-%d" % index), "w").close()
    deadline = time.monotonic() + 10
    while len(os.listdir(BARRIER_DIR)) < SHARD_COUNT and time.monotonic() < deadline:
        time.sleep(0.01)
    if len(os.listdir(BARRIER_DIR)) < SHARD_COUNT:
        status = 3

time.sleep(DELAYS.get(index, 0))

root = ET.parse(config).getroot()
files = [
    f.text
    for s in root.iter("testsuite")
    if s.get("name") == suite
    for f in s.iter("file")
]
print("[%s] %d files" % (suite, len(files)))
for f in files:
    print(os.path.basename(f))
sys.exit(status)
"""


@pytest.fixture
def fake_engine(tmp_path: Path) -> Callable[..., EngineConfig]:
    """Build an EngineConfig running a Python stand-in for the test engine.

    The stand-in prints its sub-suite name and file names, optionally
    sleeps per shard, and exits with a per-shard status.
    """

    def _make(
        exit_codes: dict[int, int] | None = None,
        delays: dict[int, float] | None = None,
        barrier_shards: int = 0,
    ) -> EngineConfig:
        barrier_dir = ""
        if barrier_shards:
            barrier = tmp_path / "barrier"
            barrier.mkdir(exist_ok=True)
            barrier_dir = str(barrier)
        script = tmp_path / "fake_engine.py"
        script.write_text(
            textwrap.dedent(
                _ENGINE_TEMPLATE.format(
                    exit_codes=exit_codes or {},
                    delays=delays or {},
                    barrier_dir=barrier_dir,
                    shard_count=barrier_shards,
                )
            ),
            encoding="utf-8",
        )
        return EngineConfig(interpreter=sys.executable, command=[str(script)])

    return _make
