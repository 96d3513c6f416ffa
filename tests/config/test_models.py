import pytest
from pydantic import ValidationError

from knest.config.models import ClusterIdentity, ProvisioningParameters, canonical_quantity


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("4Gi", "4Gi"),
        ("4096Mi", "4Gi"),
        ("1.5Gi", "1536Mi"),
        ("4000M", "4G"),
        ("1000", "1k"),
        ("0.5", "500m"),
        ("0Gi", "0"),
    ],
)
def test_canonical_quantity(raw, expected):
    assert canonical_quantity(raw) == expected


def test_invalid_quantity_rejected_by_model():
    with pytest.raises(ValidationError):
        ProvisioningParameters(worker_machine_memory_size="lots")


def test_negative_quantity_rejected():
    with pytest.raises(ValueError):
        canonical_quantity("-1Gi")


def test_defaults():
    p = ProvisioningParameters()
    assert p.kubernetes_version == "1.24.0"
    assert p.control_plane_machine_count == 1
    assert p.worker_machine_count == 1
    assert p.pod_network_cidr == "192.168.0.0/16"
    assert p.service_cidr == "10.96.0.0/12"
    assert p.control_plane_machine_memory_size == "4Gi"
    assert p.persistent is False
    assert p.machine_addresses == []


def test_model_normalises_sizes():
    p = ProvisioningParameters(worker_machine_memory_size="8192Mi", control_plane_machine_rootfs_size="10G")
    assert p.worker_machine_memory_size == "8Gi"
    assert p.control_plane_machine_rootfs_size == "10G"


def test_unknown_field_is_rejected():
    with pytest.raises(ValidationError):
        ProvisioningParameters(worker_count=3)


def test_identity_derived_names():
    ident = ClusterIdentity("demo", "nested")
    assert ident.control_plane_name == "demo-cp"
    assert ident.machine_deployment_name == "demo-md-0"
    assert ident.kubeconfig_secret_name == "demo-kubeconfig"
    assert ClusterIdentity("demo").namespace == "default"
