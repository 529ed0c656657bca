"""Shard configuration synthesizer.

Writes a suite declaration with one ``<testsuite name="shard-N">`` per
shard, each listing its files as ``<file>`` entries, in the same format
the engine reads its own configuration in.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import TYPE_CHECKING

from suiteshard.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from suiteshard.sharding.splitter import Shard

logger = logging.getLogger(__name__)

CONFIG_EXTENSION = ".xml"
ROOT_TAG = "phpunit"

# Root attributes holding paths relative to the declaration file.
_PATH_ATTRIBUTES = ("bootstrap", "cacheDirectory", "cacheResultFile")


def validate_output_path(path: Path) -> Path:
    """Ensure *path* carries the declaration-file extension.

    Raises:
        ConfigurationError: If the extension is not ``.xml``.
    """
    if path.suffix.lower() != CONFIG_EXTENSION:
        raise ConfigurationError(
            f"Output path must end in '{CONFIG_EXTENSION}', got: {path.name or path}"
        )
    return path


def _absolute_root_attributes(
    attributes: Mapping[str, str], base_dir: Path | None
) -> dict[str, str]:
    """Copy root attributes, anchoring relative path attributes at *base_dir*."""
    result = dict(attributes)
    if base_dir is None:
        return result
    for name in _PATH_ATTRIBUTES:
        value = result.get(name)
        if value and not Path(value).is_absolute():
            result[name] = str((base_dir / value).resolve())
    return result


def build_shard_document(
    shards: Sequence[Shard],
    root_attributes: Mapping[str, str] | None = None,
    base_dir: Path | None = None,
) -> ET.Element:
    """Build the synthesized declaration's element tree.

    Args:
        shards: Partitioned shards, in index order.
        root_attributes: Attributes copied onto the root element.
        base_dir: Directory relative path attributes are resolved against.

    Returns:
        The ``<phpunit>`` root element.
    """
    root = ET.Element(ROOT_TAG, _absolute_root_attributes(root_attributes or {}, base_dir))
    suites = ET.SubElement(root, "testsuites")
    for shard in sorted(shards, key=lambda s: s.index):
        suite = ET.SubElement(suites, "testsuite", {"name": shard.name})
        for test_file in shard.files:
            entry = ET.SubElement(suite, "file", {"suffix": test_file.suffix})
            entry.text = str(test_file.path)
    return root


def render_shard_document(
    shards: Sequence[Shard],
    root_attributes: Mapping[str, str] | None = None,
    base_dir: Path | None = None,
) -> str:
    """Return the synthesized declaration as an XML string."""
    root = build_shard_document(shards, root_attributes, base_dir)
    ET.indent(root, space="  ")
    return ET.tostring(root, encoding="unicode", xml_declaration=True)


def write_shard_config(
    shards: Sequence[Shard],
    output_path: Path,
    root_attributes: Mapping[str, str] | None = None,
    base_dir: Path | None = None,
) -> Path:
    """Write the synthesized declaration to *output_path*.

    Returns:
        The path written.

    Raises:
        ConfigurationError: If *output_path* has the wrong extension or
            cannot be written.
    """
    validate_output_path(output_path)
    tree = ET.ElementTree(build_shard_document(shards, root_attributes, base_dir))
    ET.indent(tree, space="  ")
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        tree.write(str(output_path), encoding="utf-8", xml_declaration=True)
    except OSError as e:
        raise ConfigurationError(f"Cannot write shard configuration {output_path}: {e}") from e
    logger.info("Shard configuration with %d suites written to %s", len(shards), output_path)
    return output_path
