"""Alias index from extracted keys to extraction field configs.

An extractor may emit a value under the config's target key, its field key
with or without the ``contact.`` namespace, or the field key recorded in the
remote snapshot. KeyResolver builds one explicit index per merge so that the
lookup priority stays auditable:

1. every config's ``target_key`` (all configs, before any derived alias)
2. derived aliases: ``field_key`` bare and namespaced, then the snapshot's
   ``fieldKey`` bare and namespaced when it differs from ``field_key``

First writer wins on every key, so a derived alias can never shadow another
config's target key.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from src.app.extraction.schemas import ExtractionFieldConfig
from src.app.extraction.standard_fields import strip_namespace, with_namespace

logger = structlog.get_logger(__name__)


def derived_aliases(config: ExtractionFieldConfig) -> list[str]:
    """Aliases a config registers after its target key, in priority order."""
    aliases: list[str] = []

    if config.field_key:
        aliases.append(config.field_key)
        aliases.append(with_namespace(config.field_key))

    snapshot = config.original_remote_snapshot
    if snapshot is not None and snapshot.fieldKey:
        snapshot_key = strip_namespace(snapshot.fieldKey)
        if snapshot_key != config.field_key:
            aliases.append(snapshot_key)
            aliases.append(with_namespace(snapshot_key))

    return aliases


class KeyResolver:
    """Read-only index of key -> config, built once from a config collection."""

    def __init__(self, configs: Iterable[ExtractionFieldConfig]) -> None:
        self._configs = list(configs)
        self._index: dict[str, ExtractionFieldConfig] = {}
        self._collisions = 0

        for config in self._configs:
            self._register(config.target_key, config)
        for config in self._configs:
            for alias in derived_aliases(config):
                self._register(alias, config)

        logger.debug(
            "resolver.index_built",
            configs=len(self._configs),
            keys=len(self._index),
            collisions=self._collisions,
        )

    def _register(self, key: str | None, config: ExtractionFieldConfig) -> None:
        if not key:
            return
        existing = self._index.get(key)
        if existing is None:
            self._index[key] = config
        elif existing.id != config.id:
            self._collisions += 1
            logger.debug(
                "resolver.alias_collision",
                key=key,
                kept=existing.id,
                ignored=config.id,
            )

    def resolve(self, key: str) -> ExtractionFieldConfig | None:
        """Config registered under ``key``, or None."""
        return self._index.get(key)

    def aliases_for(self, config: ExtractionFieldConfig) -> list[str]:
        """All keys that resolve to this config, in registration order."""
        return [key for key, owner in self._index.items() if owner.id == config.id]

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def __len__(self) -> int:
        return len(self._index)
