"""
Document properties from YAML frontmatter.

The review core only sees a property mapping per document; this module is
how the CLI and Reviewer produce one for markdown files.
"""

import logging
from collections.abc import Iterable
from datetime import date
from typing import Any, Optional

import yaml

from .filters import stringify
from .protocol import PropertyResolver, StorageGateway

logger = logging.getLogger(__name__)


def parse_frontmatter(text: str) -> Optional[dict[str, Any]]:
    """
    Extract YAML frontmatter from markdown text.

    Returns:
        The frontmatter mapping, or None if the text has no frontmatter
        block, the block is empty, or it is not a mapping.

    Raises:
        yaml.YAMLError: If the frontmatter is not valid YAML
    """
    if not text.startswith("---"):
        return None
    parts = text.split("---", 2)
    if len(parts) < 3:
        return None
    frontmatter = yaml.safe_load(parts[1])
    if not isinstance(frontmatter, dict) or not frontmatter:
        return None
    return {str(k): v for k, v in frontmatter.items()}


class FrontmatterResolver:
    """PropertyResolver reading frontmatter through a StorageGateway."""

    def __init__(self, gateway: StorageGateway):
        self._gateway = gateway

    def __call__(self, path: str) -> Optional[dict[str, Any]]:
        try:
            if not self._gateway.exists(path):
                return None
            return parse_frontmatter(self._gateway.read(path))
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.warning("Cannot read properties of %s: %s", path, e)
            return None


def collect_property_names(resolver: PropertyResolver, paths: Iterable[str]) -> list[str]:
    """All property names used by the given documents, sorted."""
    names: set[str] = set()
    for path in paths:
        properties = resolver(path)
        if properties:
            names.update(properties)
    return sorted(names)


def collect_property_values(
    resolver: PropertyResolver,
    paths: Iterable[str],
    name: str,
) -> list[str]:
    """
    All values of one property across the given documents, sorted.

    List values contribute each non-null element. Empty or false values
    are skipped.
    """
    values: set[str] = set()
    for path in paths:
        properties = resolver(path)
        if not properties:
            continue
        value = properties.get(name)
        if not value:
            continue
        if isinstance(value, (list, tuple)):
            values.update(stringify(v) for v in value if v is not None)
        elif isinstance(value, (str, int, float, date)):
            values.add(stringify(value))
    return sorted(values)
