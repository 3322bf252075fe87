"""Process-wide catalog snapshot.

The store publishes a fully built ``CatalogPack`` by swapping a single
reference under a lock.  Readers take the current reference once per
request and never observe a half-built catalog.

    from catalog_packs.store import default_store
    pack = default_store().snapshot()

Pack coordinates default to ``complianceiq/v1.0`` and can be overridden
with ``COMPLIANCEIQ_CATALOG_FAMILY`` / ``COMPLIANCEIQ_CATALOG_VERSION``.
"""
from __future__ import annotations

import logging
import os
import threading

from catalog_packs.loader import CatalogPack, load_pack

_log = logging.getLogger(__name__)

DEFAULT_FAMILY = "complianceiq"
DEFAULT_VERSION = "v1.0"


def pack_coordinates() -> tuple[str, str]:
    """(family, version) from the environment, falling back to the defaults."""
    return (
        os.getenv("COMPLIANCEIQ_CATALOG_FAMILY") or DEFAULT_FAMILY,
        os.getenv("COMPLIANCEIQ_CATALOG_VERSION") or DEFAULT_VERSION,
    )


class CatalogStore:
    """Holds the current catalog snapshot; loads lazily on first read."""

    def __init__(self, family: str | None = None, version: str | None = None) -> None:
        env_family, env_version = pack_coordinates()
        self.family = family or env_family
        self.version = version or env_version
        self._lock = threading.Lock()
        self._pack: CatalogPack | None = None

    def snapshot(self) -> CatalogPack:
        pack = self._pack
        if pack is not None:
            return pack
        with self._lock:
            if self._pack is None:
                self._pack = load_pack(self.family, self.version)
                _log.info("Catalog %s/%s published", self.family, self.version)
            return self._pack

    def publish(self, pack: CatalogPack) -> None:
        """Replace the current snapshot with an already-built pack."""
        with self._lock:
            self._pack = pack
        _log.info("Catalog snapshot replaced (%s)", pack.version_tag)

    def reload(self) -> CatalogPack:
        """Rebuild from disk and swap it in.

        Loading happens outside the lock; a failed load leaves the
        previous snapshot in place and propagates the error.
        """
        pack = load_pack(self.family, self.version)
        self.publish(pack)
        return pack


_default_store: CatalogStore | None = None
_default_lock = threading.Lock()


def default_store() -> CatalogStore:
    global _default_store
    with _default_lock:
        if _default_store is None:
            _default_store = CatalogStore()
        return _default_store
