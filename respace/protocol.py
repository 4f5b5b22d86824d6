"""
Protocol definitions for the collaborators the review core depends on.

- StorageGateway: where the review snapshot lives (filesystem locally,
  anything that can read and write a string by path elsewhere)
- PropertyResolver: turns a document path into its property mapping
"""

from typing import Any, Callable, Optional, Protocol, runtime_checkable


@runtime_checkable
class StorageGateway(Protocol):
    """
    Path-addressed string storage.

    Implemented by:
    - FileStorageGateway (files under a vault directory)
    - in-memory gateways used by tests
    """

    def exists(self, path: str) -> bool: ...

    def read(self, path: str) -> str: ...

    def write(self, path: str, content: str) -> None: ...


# Returns True while the document behind an id still exists
ExistsPredicate = Callable[[str], bool]

# Returns the document's properties, or None if it has none
PropertyResolver = Callable[[str], Optional[dict[str, Any]]]
