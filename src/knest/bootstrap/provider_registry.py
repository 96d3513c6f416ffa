# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/bootstrap/provider_registry.py
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional, Protocol

import yaml

from knest.errors import FileIOError

log = logging.getLogger("knest")


@dataclass(frozen=True)
class ProviderEntry:
    name: str
    url: str
    type: str


VIRTINK_PROVIDER = ProviderEntry(
    name="virtink",
    url="https://github.com/smartxworks/cluster-api-provider-virtink/releases/latest/infrastructure-components.yaml",
    type="InfrastructureProvider",
)


class ProviderRegistry(Protocol):
    def load(self) -> None: ...

    def contains(self, name: str) -> bool: ...

    def append(self, entry: ProviderEntry) -> None: ...

    def persist(self) -> None: ...


class InMemoryProviderRegistry:
    def __init__(self, entries: Optional[list[ProviderEntry]] = None):
        self.entries: list[ProviderEntry] = list(entries or [])
        self.persist_count = 0

    def load(self) -> None:
        pass

    def contains(self, name: str) -> bool:
        return any(e.name == name for e in self.entries)

    def append(self, entry: ProviderEntry) -> None:
        self.entries.append(entry)

    def persist(self) -> None:
        self.persist_count += 1


class FileProviderRegistry:
    """
    The `providers:` list of clusterctl's own config file
    (~/.cluster-api/clusterctl.yaml). Keys other than `providers` are kept.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = path or Path.home() / ".cluster-api" / "clusterctl.yaml"
        self._data: dict = {}

    @property
    def providers(self) -> list[dict]:
        return self._data.setdefault("providers", []) or []

    def load(self) -> None:
        if not self.path.exists():
            log.debug(f"[registry] {self.path} does not exist yet")
            self._data = {}
            return
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise FileIOError(f"read clusterctl config {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise FileIOError(f"clusterctl config {self.path} must be a mapping")
        if not isinstance(data.get("providers") or [], list):
            raise FileIOError(f"clusterctl config {self.path}: providers must be a list")
        self._data = data

    def contains(self, name: str) -> bool:
        return any(isinstance(p, dict) and p.get("name") == name for p in self.providers)

    def append(self, entry: ProviderEntry) -> None:
        self._data["providers"] = self.providers + [asdict(entry)]

    def persist(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(yaml.safe_dump(self._data, sort_keys=False), encoding="utf-8")
        except OSError as e:
            raise FileIOError(f"write clusterctl config {self.path}: {e}") from e
        log.debug(f"[registry] wrote {self.path}")
