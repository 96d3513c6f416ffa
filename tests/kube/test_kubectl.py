import json
import subprocess

import pytest

from knest.kube.kubectl import KubectlClient, KubectlError, ResourceRef


class DummyCP:
    def __init__(self, rc=0, out="", err=""):
        self.returncode = rc
        self.stdout = out
        self.stderr = err


def _capture(monkeypatch, rc=0, out="", err=""):
    calls = []

    def fake_run(argv, **kwargs):
        calls.append((argv, kwargs))
        return DummyCP(rc, out, err)

    monkeypatch.setattr(subprocess, "run", fake_run)
    return calls


def test_base_argv_carries_kubeconfig_and_context(monkeypatch):
    calls = _capture(monkeypatch)

    KubectlClient(kubeconfig="/tmp/host.kubeconfig", context="admin").apply_url("https://example.test/x.yaml")

    argv, kwargs = calls[0]
    assert argv == [
        "kubectl", "--kubeconfig", "/tmp/host.kubeconfig", "--context", "admin",
        "apply", "-f", "https://example.test/x.yaml",
    ]
    assert kwargs["capture_output"] is False


def test_exists_true_when_kubectl_prints_a_name(monkeypatch):
    calls = _capture(monkeypatch, out="customresourcedefinition.apiextensions.k8s.io/ippools.ipam.metal3.io\n")

    assert KubectlClient().exists("crd", "ippools.ipam.metal3.io") is True
    assert calls[0][0] == ["kubectl", "get", "crd", "ippools.ipam.metal3.io", "--ignore-not-found", "-o", "name"]


def test_exists_false_on_empty_output(monkeypatch):
    calls = _capture(monkeypatch, out="")

    assert KubectlClient().exists("namespace", "capm3-system", "ignored-ns") is False
    assert calls[0][0][-2:] == ["--namespace", "ignored-ns"]


def test_exists_raises_when_kubectl_fails(monkeypatch):
    _capture(monkeypatch, rc=1, err="Unable to connect to the server")

    with pytest.raises(KubectlError) as exc:
        KubectlClient().exists("crd", "datavolumes.cdi.kubevirt.io")

    assert exc.value.returncode == 1
    assert "Unable to connect" in str(exc.value)


def test_missing_kubectl_binary_raises_kubectl_error(monkeypatch):
    def fake_run(argv, **kwargs):
        raise FileNotFoundError(argv[0])

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(KubectlError, match="kubectl not found on PATH"):
        KubectlClient().apply_url("https://example.test/x.yaml")


def test_jsonpath_strips_output(monkeypatch):
    calls = _capture(monkeypatch, out="31000\n")

    port = KubectlClient().jsonpath(ResourceRef("service", "demo", "default"), "{.spec.ports[0].nodePort}")

    assert port == "31000"
    assert calls[0][0] == [
        "kubectl", "get", "service", "demo", "--namespace", "default",
        "-o", "jsonpath={.spec.ports[0].nodePort}",
    ]


def test_get_json_rejects_garbage(monkeypatch):
    _capture(monkeypatch, out="not json")

    with pytest.raises(KubectlError, match="JSON"):
        KubectlClient().get_json(ResourceRef("cdi", "cdi"))


def test_apply_content_feeds_manifest_on_stdin(monkeypatch):
    calls = _capture(monkeypatch)

    KubectlClient().apply_content("kind: IPPool\n")

    argv, kwargs = calls[0]
    assert argv == ["kubectl", "apply", "-f", "-"]
    assert kwargs["input"] == "kind: IPPool\n"


def test_delete_waits_and_ignores_missing(monkeypatch):
    calls = _capture(monkeypatch)

    KubectlClient().delete(ResourceRef("ippool.ipam.metal3.io", "demo", "default"))

    assert calls[0][0] == [
        "kubectl", "delete", "ippool.ipam.metal3.io", "demo", "--namespace", "default",
        "--wait", "--ignore-not-found",
    ]


def test_patch_merge_sends_compact_json(monkeypatch):
    calls = _capture(monkeypatch)

    KubectlClient().patch_merge(
        ResourceRef("machinedeployment.cluster.x-k8s.io", "demo-md-0", "default"),
        {"spec": {"replicas": 3}},
    )

    argv = calls[0][0]
    assert argv[argv.index("--type") + 1] == "merge"
    assert json.loads(argv[argv.index("--patch") + 1]) == {"spec": {"replicas": 3}}
    assert " " not in argv[argv.index("--patch") + 1]


def test_wait_argv_defaults_to_unbounded_timeout():
    kc = KubectlClient(context="admin")
    ref = ResourceRef("clusters.cluster.x-k8s.io", "demo", "default")

    assert kc.wait_argv(ref, "ControlPlaneInitialized") == [
        "kubectl", "--context", "admin",
        "wait", "clusters.cluster.x-k8s.io", "demo", "--namespace", "default",
        "--for", "condition=ControlPlaneInitialized", "--timeout", "-1s",
    ]
    assert kc.wait_argv(ref, "Available", timeout_seconds=600)[-2:] == ["--timeout", "600s"]
