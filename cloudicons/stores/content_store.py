"""Reads raw SVG bytes from the first content root that has the file."""

import asyncio
import logging
from pathlib import Path

from cloudicons.errors import AssetMissingError

logger = logging.getLogger(__name__)


class ContentStore:
    """Ordered list of base directories tried on every read."""

    def __init__(self, roots: list[Path]):
        self.roots = list(roots)

    async def read_raw(self, content_path: str) -> bytes:
        """Bytes of `content_path`. Raises AssetMissingError if no root has it."""
        return await asyncio.to_thread(self._read_first, content_path)

    def _read_first(self, content_path: str) -> bytes:
        if "\x00" in content_path:
            logger.warning("Content path contains NUL byte | path=%r", content_path)
            raise AssetMissingError(content_path)

        relative = content_path.lstrip("/\\")

        for root in self.roots:
            try:
                candidate = _resolve_inside(root, relative)
            except (OSError, ValueError):
                logger.warning("Content path not resolvable | root=%s | path=%r", root, content_path)
                continue
            if candidate is None:
                logger.warning("Content path escapes root | root=%s | path=%s", root, content_path)
                continue
            try:
                return candidate.read_bytes()
            except (OSError, ValueError):
                logger.debug("Content not at root | root=%s | path=%s", root, content_path)

        raise AssetMissingError(content_path)


def _resolve_inside(root: Path, relative: str) -> Path | None:
    """`root / relative`, or None when it would point outside `root`."""
    base = root.resolve()
    candidate = (base / relative).resolve()
    if candidate == base or base not in candidate.parents:
        return None
    return candidate
