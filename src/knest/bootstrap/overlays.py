# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/bootstrap/overlays.py
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import yaml

from knest.errors import TemplateError, UnsupportedModeError
from .template_renderer import TemplateRenderer

log = logging.getLogger("knest")


class HostCNI(str, Enum):
    CALICO = "calico"
    KUBE_OVN = "kube-ovn"


@dataclass(frozen=True)
class Overlay:
    """A manifest fragment merged onto the generated cluster manifest."""

    cni: HostCNI
    template: str


OVERLAYS: dict[HostCNI, Overlay] = {
    HostCNI.CALICO: Overlay(HostCNI.CALICO, "calico-static-ip-and-mac-patches.yaml"),
    HostCNI.KUBE_OVN: Overlay(HostCNI.KUBE_OVN, "kube-ovn-static-ip-and-mac-patches.yaml"),
}


def select_overlay(persistent: bool, host_cluster_cni: Optional[str]) -> Optional[Overlay]:
    """
    Map (persistent, host CNI) to the overlay to apply, or None.

    Static IP/MAC pinning only makes sense for persistent machines, so the
    CNI is ignored otherwise. An unknown CNI fails before anything is applied.
    """
    if not host_cluster_cni:
        return None
    try:
        cni = HostCNI(host_cluster_cni)
    except ValueError:
        raise UnsupportedModeError(
            f"unsupported host cluster CNI: {host_cluster_cni} "
            f"(supported: {', '.join(c.value for c in HostCNI)})"
        ) from None
    if not persistent:
        log.debug(f"[overlay] host CNI {cni.value} ignored for ephemeral machines")
        return None
    return OVERLAYS[cni]


def merge_patch(target: Any, patch: Any) -> Any:
    """JSON merge patch: maps merge recursively, None deletes, everything else replaces."""
    if not isinstance(patch, dict):
        return copy.deepcopy(patch)
    result = dict(target) if isinstance(target, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = merge_patch(result.get(key), value)
    return result


def _matches(doc: dict, target: dict) -> bool:
    if target.get("kind") and doc.get("kind") != target["kind"]:
        return False
    name = (doc.get("metadata") or {}).get("name")
    if target.get("name") and name != target["name"]:
        return False
    return True


class OverlayComposer:
    def __init__(self, renderer: TemplateRenderer):
        self.renderer = renderer

    def load_patches(self, overlay: Overlay) -> list[dict]:
        text = self.renderer.render(overlay.template, {})
        try:
            fragment = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise TemplateError(f"overlay {overlay.template} is not valid YAML: {e}") from e
        patches = fragment.get("patches") if isinstance(fragment, dict) else None
        if not isinstance(patches, list):
            raise TemplateError(f"overlay {overlay.template} has no patches list")
        return patches

    def compose(self, base_manifest: str, overlay: Optional[Overlay]) -> str:
        if overlay is None:
            return base_manifest

        try:
            docs = [d for d in yaml.safe_load_all(base_manifest) if d is not None]
        except yaml.YAMLError as e:
            raise TemplateError(f"generated manifest is not valid YAML: {e}") from e

        for entry in self.load_patches(overlay):
            target = entry.get("target") or {}
            patch = entry.get("patch") or {}
            hits = 0
            for i, doc in enumerate(docs):
                if isinstance(doc, dict) and _matches(doc, target):
                    docs[i] = merge_patch(doc, patch)
                    hits += 1
            if hits == 0:
                log.warning(f"[overlay] {overlay.template}: no documents match target {target}")
            else:
                log.debug(f"[overlay] {overlay.template}: patched {hits} document(s) for {target}")

        return yaml.safe_dump_all(docs, sort_keys=False)
