"""
Filesystem storage gateway.

Paths are vault-relative strings, as used for document ids; the gateway
resolves them against the vault root and refuses anything outside it.
"""

import os
import tempfile
from pathlib import Path


class FileStorageGateway:
    """
    StorageGateway over a directory on disk.

    Writes go to a temporary file in the target directory and are moved
    into place with os.replace(), so readers never see a partial snapshot.
    """

    def __init__(self, root: Path):
        self._root = Path(root).expanduser().resolve()

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, path: str) -> Path:
        """Absolute path for a vault-relative path.

        Raises:
            ValueError: If the path escapes the vault root
        """
        full = (self._root / path).resolve()
        if full != self._root and self._root not in full.parents:
            raise ValueError(f"Path is outside the vault: {path!r}")
        return full

    def relative(self, path: Path) -> str:
        """Vault-relative id (forward slashes) for an absolute path."""
        return Path(path).resolve().relative_to(self._root).as_posix()

    def exists(self, path: str) -> bool:
        try:
            return self.resolve(path).is_file()
        except (OSError, ValueError):
            return False

    def read(self, path: str) -> str:
        return self.resolve(path).read_text(encoding="utf-8")

    def write(self, path: str, content: str) -> None:
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp, target)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise
