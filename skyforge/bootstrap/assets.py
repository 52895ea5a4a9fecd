"""Bootstrap script lookup."""

from __future__ import annotations

from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path, PurePosixPath
from typing import Protocol

from loguru import logger

from skyforge.core.exceptions import BootstrapAssetNotFoundError


class AssetStore(Protocol):
    """Source of bootstrap scripts, looked up by the pool's script name."""

    def load(self, name: str) -> bytes:
        """Return the raw script bytes.

        Raises:
            BootstrapAssetNotFoundError: If no script has that name.
        """
        ...


def _checked_parts(name: str) -> tuple[str, ...]:
    path = PurePosixPath(name)
    if not name or path.is_absolute() or ".." in path.parts:
        raise BootstrapAssetNotFoundError(name)
    return path.parts


class PackageAssets:
    """Scripts bundled in ``skyforge/bootstrap/scripts``."""

    def __init__(self, package: str = "skyforge.bootstrap", directory: str = "scripts") -> None:
        self._root: Traversable = resources.files(package).joinpath(directory)

    def load(self, name: str) -> bytes:
        node = self._root
        for part in _checked_parts(name):
            node = node.joinpath(part)
        if not node.is_file():
            raise BootstrapAssetNotFoundError(name)
        logger.debug(f"Loaded bundled bootstrap script {name}")
        return node.read_bytes()


class DirectoryAssets:
    """Scripts read from a local directory."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser()

    def load(self, name: str) -> bytes:
        path = self._root.joinpath(*_checked_parts(name))
        if not path.is_file():
            raise BootstrapAssetNotFoundError(name)
        logger.debug(f"Loaded bootstrap script {path}")
        return path.read_bytes()
