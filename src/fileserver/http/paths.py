"""
=============================================================================
PATH VALIDATION
=============================================================================

The request target is glued onto the document root to get the file to
serve:

    root = "./public"        target = "/css/site.css"
    resource path = "./public/css/site.css"

Without a check, a target like "/../../etc/passwd" walks right out of the
root. Two rules are applied to the raw target text:

    1. it must start with "/"
    2. it must not contain "/../" anywhere

=============================================================================
KNOWN GAPS OF THE TEXTUAL CHECK
=============================================================================

The rules look at text, not at the filesystem, so they miss:

    /secret/..        trailing "/.." has no slash after it
    /link/passwd      a symlink inside root pointing outside it

These are kept as-is for compatibility. Pass strict=True to additionally
resolve the resource path and require it to stay inside the resolved
root, the same containment check the static file handler relies on:

    (root / target).resolve().relative_to(root.resolve())

=============================================================================
"""

import logging
from pathlib import Path
from typing import Union

from ..errors import ForbiddenPath


logger = logging.getLogger(__name__)


class PathValidator:
    """
    Maps request targets to filesystem paths under a document root.

    Args:
        root: Document root directory.
        strict: Also reject targets whose resolved path leaves the root.
    """

    def __init__(self, root: Union[str, Path], strict: bool = False):
        self.root = Path(root)
        self.strict = strict

    def validate(self, target: str) -> str:
        """
        Check target and build the resource path.

        Returns:
            root + target as a string. It is kept as text rather than a
            Path so a trailing "/" survives and names a directory.

        Raises:
            ForbiddenPath: If target fails a rule.
        """
        if not target.startswith("/"):
            raise ForbiddenPath(f"Target must start with '/': {target!r}")

        if "/../" in target:
            logger.warning(f"Path traversal attempt: {target!r}")
            raise ForbiddenPath(f"Target contains '/../': {target!r}")

        resource = f"{self.root}{target}"

        if self.strict:
            self._check_confined(target, resource)

        return resource

    def _check_confined(self, target: str, resource: str) -> None:
        if "\x00" in resource:
            raise ForbiddenPath(f"Target contains a NUL byte: {target!r}")

        root = self.root.resolve()
        try:
            resolved = Path(resource).resolve()
        except (OSError, ValueError, RuntimeError) as e:
            # Symlink loops, unreadable directories
            raise ForbiddenPath(f"Cannot resolve target {target!r}: {e}") from e

        try:
            resolved.relative_to(root)
        except ValueError:
            logger.warning(f"Path escapes document root: {target!r}")
            raise ForbiddenPath(f"Target resolves outside the document root: {target!r}")
