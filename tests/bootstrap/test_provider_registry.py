from pathlib import Path

import pytest
import yaml

from knest.bootstrap.provider_registry import FileProviderRegistry, InMemoryProviderRegistry, VIRTINK_PROVIDER
from knest.errors import FileIOError


def test_file_registry_created_when_missing(tmp_path: Path):
    path = tmp_path / ".cluster-api" / "clusterctl.yaml"
    reg = FileProviderRegistry(path)

    reg.load()
    assert not reg.contains("virtink")
    reg.append(VIRTINK_PROVIDER)
    reg.persist()

    data = yaml.safe_load(path.read_text())
    assert data["providers"] == [
        {"name": "virtink", "url": VIRTINK_PROVIDER.url, "type": "InfrastructureProvider"}
    ]


def test_file_registry_keeps_other_keys(tmp_path: Path):
    path = tmp_path / "clusterctl.yaml"
    path.write_text(
        "EXP_CLUSTER_RESOURCE_SET: 'true'\n"
        "providers:\n"
        "  - name: my-infra\n"
        "    url: https://example.test/infrastructure-components.yaml\n"
        "    type: InfrastructureProvider\n"
    )
    reg = FileProviderRegistry(path)

    reg.load()
    reg.append(VIRTINK_PROVIDER)
    reg.persist()

    data = yaml.safe_load(path.read_text())
    assert data["EXP_CLUSTER_RESOURCE_SET"] == "true"
    assert [p["name"] for p in data["providers"]] == ["my-infra", "virtink"]

    again = FileProviderRegistry(path)
    again.load()
    assert again.contains("virtink")


def test_file_registry_rejects_bad_providers(tmp_path: Path):
    path = tmp_path / "clusterctl.yaml"
    path.write_text("providers: virtink\n")

    with pytest.raises(FileIOError, match="providers must be a list"):
        FileProviderRegistry(path).load()


def test_in_memory_registry_counts_persists():
    reg = InMemoryProviderRegistry()
    reg.append(VIRTINK_PROVIDER)
    reg.persist()
    assert reg.contains("virtink") and reg.persist_count == 1
