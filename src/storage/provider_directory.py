# src/storage/provider_directory.py

"""Provider lookup used to map scraped provider names onto the catalog."""

import logging
from typing import Protocol

from src.storage.catalog_db import CatalogStore, slugify

logger = logging.getLogger("plan_sync.providers")


class ProviderDirectory(Protocol):
    """Resolve a listing's provider to a catalog provider id."""

    def resolve(
        self, provider_name: str, provider_key: str | None = None,
    ) -> str | None: ...


class CatalogProviderDirectory:
    """Provider lookup backed by the catalog's providers table.

    Candidates are tried in order: the record's own identity key, the
    alias table entry for its name, the name itself, then the slugified
    name. Results (including misses) are cached for the lifetime of the
    instance, so build a new directory for every run.
    """

    def __init__(
        self,
        store: CatalogStore,
        aliases: dict[str, str] | None = None,
    ) -> None:
        self._store = store
        self._aliases = dict(aliases or {})
        self._cache: dict[tuple[str, str | None], str | None] = {}

    def resolve(
        self, provider_name: str, provider_key: str | None = None,
    ) -> str | None:
        cache_key = (provider_name, provider_key)
        if cache_key in self._cache:
            return self._cache[cache_key]

        candidates = [
            provider_key,
            self._aliases.get(provider_name),
            provider_name,
            slugify(provider_name),
        ]
        provider_id: str | None = None
        for candidate in candidates:
            if not candidate:
                continue
            provider_id = self._store.resolve_provider_id(candidate)
            if provider_id is not None:
                break

        if provider_id is None:
            logger.debug(
                "Provider not in directory: %s", provider_name,
            )
        self._cache[cache_key] = provider_id
        return provider_id


class MappingProviderDirectory:
    """In-memory directory keyed by provider name."""

    def __init__(self, mapping: dict[str, str]) -> None:
        self._mapping = dict(mapping)

    def resolve(
        self, provider_name: str, provider_key: str | None = None,
    ) -> str | None:
        if provider_name in self._mapping:
            return self._mapping[provider_name]
        if provider_key is not None:
            return self._mapping.get(provider_key)
        return None
