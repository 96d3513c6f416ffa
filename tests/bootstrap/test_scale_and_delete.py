from pathlib import Path

import pytest

from knest.bootstrap.credentials import CredentialStore
from knest.bootstrap.delete import DeleteController
from knest.bootstrap.scale import ScaleController
from knest.config.models import ClusterIdentity
from knest.errors import InvalidInputError
from knest.observers.dispatcher import EventBus


class RecordingKubectl:
    def __init__(self):
        self.calls = []

    def patch_merge(self, ref, patch):
        self.calls.append(("patch", ref.kind, ref.name, ref.namespace, patch))

    def delete(self, ref, wait=True, ignore_not_found=True):
        self.calls.append(("delete", ref.kind, ref.name, ref.namespace))


class Capture:
    def __init__(self):
        self.events = []

    def notify(self, ev):
        self.events.append(ev)


IDENT = ClusterIdentity("demo", "nested")


def test_scale_both_sides():
    kc = RecordingKubectl()
    cap = Capture()

    refs = ScaleController(kc, bus=EventBus([cap])).scale(IDENT, control_plane=3, workers=0)

    assert [r.name for r in refs] == ["demo-cp", "demo-md-0"]
    assert kc.calls == [
        ("patch", "kubeadmcontrolplane.controlplane.cluster.x-k8s.io", "demo-cp", "nested", {"spec": {"replicas": 3}}),
        ("patch", "machinedeployment.cluster.x-k8s.io", "demo-md-0", "nested", {"spec": {"replicas": 0}}),
    ]
    assert [e.replicas for e in cap.events] == [3, 0]


def test_scale_nothing_requested_is_noop():
    kc = RecordingKubectl()
    assert ScaleController(kc).scale(IDENT) == []
    assert kc.calls == []


def test_scale_rejects_negative():
    kc = RecordingKubectl()
    with pytest.raises(InvalidInputError):
        ScaleController(kc).scale(IDENT, workers=-1)
    assert kc.calls == []


def test_delete_removes_cluster_pool_and_kubeconfig(tmp_path: Path):
    kc = RecordingKubectl()
    cap = Capture()
    store = CredentialStore(tmp_path)
    store.write("nested", "demo", b"kind: Config\n")

    DeleteController(kc, store, bus=EventBus([cap])).delete(IDENT)

    assert kc.calls == [
        ("delete", "clusters.cluster.x-k8s.io", "demo", "nested"),
        ("delete", "ippool.ipam.metal3.io", "demo", "nested"),
    ]
    assert not store.path("nested", "demo").exists()
    assert cap.events[0].kubeconfig_removed is True


def test_delete_without_local_kubeconfig(tmp_path: Path):
    cap = Capture()
    DeleteController(RecordingKubectl(), CredentialStore(tmp_path), bus=EventBus([cap])).delete(IDENT)
    assert cap.events[0].kubeconfig_removed is False


def test_scale_control_plane_only_leaves_workers_alone():
    kc = RecordingKubectl()

    refs = ScaleController(kc).scale(IDENT, control_plane=3)

    assert [r.name for r in refs] == ["demo-cp"]
    assert kc.calls == [
        ("patch", "kubeadmcontrolplane.controlplane.cluster.x-k8s.io", "demo-cp", "nested", {"spec": {"replicas": 3}}),
    ]


def test_scale_and_delete_events_carry_run_id(tmp_path: Path):
    cap = Capture()
    bus = EventBus([cap])

    ScaleController(RecordingKubectl(), bus=bus, run_id="run-1").scale(IDENT, workers=2)
    DeleteController(RecordingKubectl(), CredentialStore(tmp_path), bus=bus, run_id="run-1").delete(IDENT)

    assert [e.run_id for e in cap.events] == ["run-1", "run-1"]
