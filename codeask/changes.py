"""
Change detection for incremental indexing.

A file is re-embedded only when none of its stored records carries the
fingerprint of its current content.
"""

import hashlib
import logging
from dataclasses import dataclass, field

from .store import VectorStore

logger = logging.getLogger(__name__)


def fingerprint(content: str) -> str:
    """
    Compute a 64-bit checksum of file content as 16 hex characters.

    This is a change detector, not a security mechanism: it only has to make
    accidental collisions between two versions of a file vanishingly rare.
    """
    return hashlib.blake2b(content.encode("utf-8"), digest_size=8).hexdigest()


@dataclass
class ChangeStatus:
    """Outcome of comparing a file's fingerprint with what is stored."""
    changed: bool
    existing_ids: list[str] = field(default_factory=list)

    @property
    def first_index(self) -> bool:
        return self.changed and not self.existing_ids


class ChangeDetector:
    """Compares a file's current fingerprint with the fingerprints stored for its path."""

    def __init__(self, store: VectorStore):
        self.store = store

    def check(self, path: str, content_fingerprint: str) -> ChangeStatus:
        """
        Look up a file's records and decide whether it must be re-embedded.

        Args:
            path: File path the records are keyed by
            content_fingerprint: Fingerprint of the file's current content

        Returns:
            ChangeStatus; when changed, existing_ids lists the records that
            become stale once the new ones are written

        Raises:
            StoreError: If the lookup fails
        """
        existing = self.store.records_for_path(path)
        if not existing:
            return ChangeStatus(changed=True)

        if any(record.fingerprint == content_fingerprint for record in existing):
            logger.debug(f"Unchanged: {path}")
            return ChangeStatus(changed=False, existing_ids=[r.id for r in existing])

        return ChangeStatus(changed=True, existing_ids=[r.id for r in existing])

    def has_changed(self, path: str, content_fingerprint: str) -> bool:
        return self.check(path, content_fingerprint).changed
