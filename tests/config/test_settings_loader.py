from pathlib import Path

import pytest

from knest.config.loader import load_settings, merge_parameters
from knest.config.models import ProvisioningParameters
from knest.errors import FileIOError, InvalidInputError


def test_defaults_when_no_file(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("KNEST_CONFIG", raising=False)

    s = load_settings()

    assert s.namespace == "default"
    assert s.create == ProvisioningParameters()


def test_home_config_file_with_env_expansion(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("KNEST_CONFIG", raising=False)
    monkeypatch.setenv("HOST_CTX", "host-admin")
    cfg = tmp_path / ".knest" / "config.yaml"
    cfg.parent.mkdir()
    cfg.write_text(
        "namespace: nested\n"
        "context: ${HOST_CTX}\n"
        "create:\n"
        "  worker_machine_count: 3\n"
        "  worker_machine_memory_size: 8192Mi\n"
    )

    s = load_settings()

    assert s.namespace == "nested"
    assert s.context == "host-admin"
    assert s.create.worker_machine_count == 3
    assert s.create.worker_machine_memory_size == "8Gi"


def test_knest_config_env_var(monkeypatch, tmp_path: Path):
    cfg = tmp_path / "knest.yaml"
    cfg.write_text("namespace: from-env\n")
    monkeypatch.setenv("KNEST_CONFIG", str(cfg))

    assert load_settings().namespace == "from-env"


def test_explicit_path_must_exist(tmp_path: Path):
    with pytest.raises(FileIOError, match="config file not found"):
        load_settings(tmp_path / "missing.yaml")


def test_invalid_config_is_input_error(tmp_path: Path):
    cfg = tmp_path / "bad.yaml"
    cfg.write_text("create:\n  control_plane_machine_count: -2\n")

    with pytest.raises(InvalidInputError):
        load_settings(cfg)


def test_non_mapping_config_is_io_error(tmp_path: Path):
    cfg = tmp_path / "list.yaml"
    cfg.write_text("- a\n- b\n")

    with pytest.raises(FileIOError):
        load_settings(cfg)


def test_merge_parameters_only_overrides_given_values():
    base = ProvisioningParameters(worker_machine_count=3, persistent=True)

    merged = merge_parameters(base, {"worker_machine_count": None, "kubernetes_version": "1.25.0"})

    assert merged.worker_machine_count == 3
    assert merged.persistent is True
    assert merged.kubernetes_version == "1.25.0"


def test_merge_parameters_validates():
    with pytest.raises(InvalidInputError):
        merge_parameters(ProvisioningParameters(), {"worker_machine_cpu_cores": 0})
