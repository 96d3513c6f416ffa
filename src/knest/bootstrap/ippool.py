# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/bootstrap/ippool.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from knest.errors import InvalidInputError
from .template_renderer import TemplateRenderer

IPPOOL_KIND = "ippool.ipam.metal3.io"
IPPOOL_TEMPLATE = "ippool.yaml.j2"


@dataclass(frozen=True)
class PoolEntry:
    """Either an explicit start-end range or a subnet."""

    start: Optional[str] = None
    end: Optional[str] = None
    subnet: Optional[str] = None

    @property
    def is_range(self) -> bool:
        return self.subnet is None


@dataclass(frozen=True)
class AddressPoolRequest:
    name: str
    namespace: str
    pools: tuple[PoolEntry, ...] = field(default_factory=tuple)

    def template_params(self) -> dict:
        return {
            "name": self.name,
            "namespace": self.namespace,
            "pools": [
                {"start": p.start, "end": p.end, "subnet": p.subnet} for p in self.pools
            ],
        }


def split_address_tokens(values: Iterable[str]) -> list[str]:
    """Flatten repeated and comma-separated flag values, dropping blanks."""
    tokens: list[str] = []
    for value in values:
        tokens += [t.strip() for t in value.split(",") if t.strip()]
    return tokens


def parse_pool_entry(token: str) -> PoolEntry:
    if "-" in token:
        items = token.split("-")
        if len(items) != 2:
            raise InvalidInputError(f"invalid machine address: {token}")
        return PoolEntry(start=items[0], end=items[1])
    return PoolEntry(subnet=token)


def parse_address_pool(name: str, namespace: str, addresses: Iterable[str]) -> AddressPoolRequest:
    pools = tuple(parse_pool_entry(t) for t in split_address_tokens(addresses))
    return AddressPoolRequest(name=name, namespace=namespace, pools=pools)


def render_address_pool(request: AddressPoolRequest, renderer: TemplateRenderer) -> str:
    return renderer.render(IPPOOL_TEMPLATE, request.template_params())
