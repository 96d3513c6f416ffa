# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/bootstrap/credentials.py
from __future__ import annotations

import base64
import binascii
import ipaddress
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

import yaml
from kubernetes import client, config

from knest.errors import FileIOError

log = logging.getLogger("knest")


def decode_kubeconfig(encoded: str, secret_name: str = "kubeconfig") -> bytes:
    """Decode the `.data.value` of a `<cluster>-kubeconfig` Secret."""
    try:
        data = base64.b64decode(encoded.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise FileIOError(f"decode kubeconfig: {e}") from e
    if not data.strip():
        raise FileIOError(f"decode kubeconfig: secret {secret_name} has no value")
    return data


def load_host_endpoint(kubeconfig: Optional[str] = None, context: Optional[str] = None) -> str:
    """API server URL of the host cluster, as the current kubeconfig sees it."""
    configuration = client.Configuration()
    try:
        config.load_kube_config(
            config_file=kubeconfig,
            context=context,
            client_configuration=configuration,
        )
    except (config.ConfigException, OSError) as e:
        raise FileIOError(f"load host kubeconfig: {e}") from e
    return configuration.host


def build_server_url(host_endpoint: str, node_port: str | int) -> str:
    """
    Keep the scheme and host of the host cluster endpoint, swap in the
    nested control plane's node port.
    """
    parts = urlsplit(host_endpoint)
    if not parts.scheme or not parts.hostname:
        raise FileIOError(f"parse host endpoint: {host_endpoint!r} has no scheme or host")

    host = parts.hostname
    try:
        if ipaddress.ip_address(host).version == 6:
            host = f"[{host}]"
    except ValueError:
        pass  # DNS name

    return f"{parts.scheme}://{host}:{node_port}"


def rewrite_cluster_entry(
    kubeconfig: dict,
    cluster_name: str,
    *,
    server: str,
    tls_server_name: str,
) -> dict:
    """
    Point the named cluster entry at ``server`` and pin the TLS server name.

    The serving certificate was issued for the in-cluster service address,
    not for the host:nodePort we dial. Creates the entry when it is missing,
    like `kubectl config set-cluster` does.
    """
    clusters = kubeconfig.setdefault("clusters", None) or []
    kubeconfig["clusters"] = clusters

    for item in clusters:
        if isinstance(item, dict) and item.get("name") == cluster_name:
            entry = item.setdefault("cluster", None) or {}
            item["cluster"] = entry
            break
    else:
        entry = {}
        clusters.append({"name": cluster_name, "cluster": entry})

    entry["server"] = server
    entry["tls-server-name"] = tls_server_name
    return kubeconfig


class CredentialStore:
    """Nested cluster kubeconfigs under ~/.kube/knest.<namespace>.<name>.kubeconfig."""

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = base_dir or Path.home() / ".kube"

    def path(self, namespace: str, name: str) -> Path:
        return self.base_dir / f"knest.{namespace}.{name}.kubeconfig"

    def write(self, namespace: str, name: str, data: bytes) -> Path:
        path = self.path(namespace, name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
            path.chmod(0o600)
        except OSError as e:
            raise FileIOError(f"save kubeconfig {path}: {e}") from e
        return path

    def rewrite(
        self,
        path: Path,
        cluster_name: str,
        *,
        server: str,
        tls_server_name: str,
    ) -> None:
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise FileIOError(f"read kubeconfig {path}: {e}") from e
        if not isinstance(data, dict):
            raise FileIOError(f"kubeconfig {path} is not a mapping")

        rewrite_cluster_entry(data, cluster_name, server=server, tls_server_name=tls_server_name)

        try:
            path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        except OSError as e:
            raise FileIOError(f"update kubeconfig {path}: {e}") from e
        log.debug(f"[kubeconfig] {path}: server={server} tls-server-name={tls_server_name}")

    def remove(self, namespace: str, name: str) -> bool:
        """Delete the kubeconfig; False when there was nothing to delete."""
        path = self.path(namespace, name)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise FileIOError(f"remove kubeconfig {path}: {e}") from e
        return True
