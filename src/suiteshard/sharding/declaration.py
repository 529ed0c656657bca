"""Suite declaration parsing.

Reads PHPUnit-style XML declarations::

    <phpunit bootstrap="vendor/autoload.php">
      <testsuites>
        <testsuite name="unit">
          <directory suffix="Test.php">tests/Unit</directory>
        </testsuite>
      </testsuites>
    </phpunit>

The scan is a streaming two-state machine: it is either outside any
``<testsuite>`` or inside one, and it only collects ``<directory>``
entries while inside. Commented-out entries are never elements, so they
can never be collected.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import ParseError as DefusedParseError
from defusedxml.ElementTree import iterparse

from suiteshard.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterator
    from xml.etree.ElementTree import Element as XmlElement

logger = logging.getLogger(__name__)

SUITE_TAG = "testsuite"
DIRECTORY_TAG = "directory"


class _ScanState(enum.Enum):
    OUTSIDE = "outside"
    INSIDE = "inside"


@dataclass
class SuiteDeclaration:
    """Parsed suite declaration: suite name to its directories, in order."""

    suites: dict[str, tuple[str, ...]] = field(default_factory=dict)
    """Declared suites in document order."""

    base_dir: Path = field(default_factory=Path.cwd)
    """Directory relative entries resolve against (the declaration's parent)."""

    root_attributes: dict[str, str] = field(default_factory=dict)
    """Attributes of the document's root element."""

    def directories(self, suite_name: str) -> tuple[str, ...]:
        """Return the directories registered under *suite_name* (empty if absent)."""
        return self.suites.get(suite_name, ())


def _local_tag(elem: XmlElement) -> str:
    return elem.tag.split("}")[-1] if "}" in elem.tag else elem.tag


def _scan_suites(source: Path) -> Iterator[tuple[str, tuple[str, ...]]]:
    """Yield ``(suite_name, directories)`` as each ``</testsuite>`` closes.

    Stops reading as soon as the caller stops iterating, so content after
    a consumer's target suite is never parsed.
    """
    if not source.is_file():
        raise ConfigurationError(f"Suite declaration not found: {source}")

    state = _ScanState.OUTSIDE
    current_name = ""
    current_dirs: list[str] = []

    try:
        with source.open("rb") as fh:
            for event, elem in iterparse(fh, events=("start", "end")):
                tag = _local_tag(elem)

                if state is _ScanState.OUTSIDE:
                    if event == "start" and tag == SUITE_TAG:
                        current_name = (elem.get("name") or "").strip()
                        if not current_name:
                            raise ConfigurationError(
                                f"<testsuite> without a name attribute in {source}"
                            )
                        current_dirs = []
                        state = _ScanState.INSIDE
                    continue

                # INSIDE a suite
                if event == "start" and tag == SUITE_TAG:
                    raise ConfigurationError(
                        f"Nested <testsuite> inside suite '{current_name}' in {source}"
                    )
                if event == "end" and tag == DIRECTORY_TAG:
                    directory = (elem.text or "").strip()
                    if not directory:
                        raise ConfigurationError(
                            f"Empty <directory> entry in suite '{current_name}' in {source}"
                        )
                    if directory not in current_dirs:
                        current_dirs.append(directory)
                elif event == "end" and tag == SUITE_TAG:
                    state = _ScanState.OUTSIDE
                    yield current_name, tuple(current_dirs)
    except (DefusedParseError, DefusedXmlException) as e:
        raise ConfigurationError(f"Malformed suite declaration {source}: {e}") from e


def read_suite_directories(source: str | Path, suite_name: str) -> tuple[str, ...]:
    """Return the directories declared under *suite_name*.

    Collection stops at the suite's closing tag; nothing after it is read.

    Args:
        source: Path to the XML suite declaration.
        suite_name: Name attribute of the wanted ``<testsuite>``.

    Returns:
        Directories in declaration order, or an empty tuple when the suite
        is not declared.

    Raises:
        ConfigurationError: If the declaration is missing or malformed.
    """
    path = Path(source)
    for name, directories in _scan_suites(path):
        if name == suite_name:
            logger.debug("Suite '%s' declares %d directories", suite_name, len(directories))
            return directories
    logger.debug("Suite '%s' not declared in %s", suite_name, path)
    return ()


def read_root_attributes(source: str | Path) -> dict[str, str]:
    """Return the attributes of the declaration's root element."""
    path = Path(source)
    if not path.is_file():
        raise ConfigurationError(f"Suite declaration not found: {path}")
    try:
        with path.open("rb") as fh:
            for _event, elem in iterparse(fh, events=("start",)):
                return dict(elem.attrib)
    except (DefusedParseError, DefusedXmlException) as e:
        raise ConfigurationError(f"Malformed suite declaration {path}: {e}") from e
    return {}


def load_suite_declaration(source: str | Path) -> SuiteDeclaration:
    """Parse every suite of a declaration file.

    Raises:
        ConfigurationError: If the declaration is missing, malformed, or
            declares the same suite name twice.
    """
    path = Path(source)
    declaration = SuiteDeclaration(
        base_dir=path.resolve().parent,
        root_attributes=read_root_attributes(path),
    )
    for name, directories in _scan_suites(path):
        if name in declaration.suites:
            raise ConfigurationError(f"Duplicate suite '{name}' in {path}")
        declaration.suites[name] = directories
    return declaration
