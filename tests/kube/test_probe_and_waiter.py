import subprocess

import pytest

from knest.errors import ProbeTransportError, WaitCancelled, WaitError
from knest.kube.kubectl import KubectlClient, KubectlError, ResourceRef
from knest.kube.probe import CapabilityMarker, ResourceProbe
from knest.kube.waiter import CancelToken, KubectlWaiter


class StubKubectl:
    def __init__(self, present=False, error=None):
        self.present = present
        self.error = error
        self.calls = []

    def exists(self, kind, name, namespace=None):
        self.calls.append((kind, name, namespace))
        if self.error:
            raise self.error
        return self.present


def test_probe_present_and_absent():
    assert ResourceProbe(StubKubectl(present=True)).exists(CapabilityMarker("ippools.ipam.metal3.io")) is True
    stub = StubKubectl(present=False)
    assert ResourceProbe(stub).exists(CapabilityMarker("capm3-system", kind="namespace")) is False
    assert stub.calls == [("namespace", "capm3-system", None)]


def test_probe_transport_failure_is_not_absence():
    stub = StubKubectl(error=KubectlError("Unable to connect to the server"))

    with pytest.raises(ProbeTransportError, match="crd/datavolumes.cdi.kubevirt.io"):
        ResourceProbe(stub).exists(CapabilityMarker("datavolumes.cdi.kubevirt.io"))


class FakePopen:
    instances = []

    def __init__(self, argv, rc=0, out="", err="", polls_before_exit=0, **kwargs):
        self.argv = argv
        self.returncode = None
        self._rc = rc
        self._out = out
        self._err = err
        self._polls = polls_before_exit
        self.terminated = False
        FakePopen.instances.append(self)

    def wait(self, timeout=None):
        if self.terminated:
            self.returncode = -15
            return self.returncode
        if self._polls > 0:
            self._polls -= 1
            raise subprocess.TimeoutExpired(self.argv, timeout)
        self.returncode = self._rc
        return self.returncode

    def terminate(self):
        self.terminated = True

    def communicate(self):
        return self._out, self._err


def _popen(monkeypatch, **behaviour):
    FakePopen.instances = []
    monkeypatch.setattr(subprocess, "Popen", lambda argv, **kw: FakePopen(argv, **behaviour, **kw))


REF = ResourceRef("deployment", "virt-controller", "virtink-system")


def test_wait_returns_once_condition_met(monkeypatch):
    _popen(monkeypatch, rc=0, out="deployment.apps/virt-controller condition met\n", polls_before_exit=2)

    KubectlWaiter(KubectlClient(), poll_interval=0.01).wait_for(REF, "Available")

    argv = FakePopen.instances[0].argv
    assert argv[:4] == ["kubectl", "wait", "deployment", "virt-controller"]
    assert argv[-2:] == ["--timeout", "-1s"]


def test_wait_honours_bounded_timeout(monkeypatch):
    _popen(monkeypatch, rc=0)

    KubectlWaiter(KubectlClient(), timeout_seconds=30).wait_for(REF, "Available")

    assert FakePopen.instances[0].argv[-2:] == ["--timeout", "30s"]


def test_wait_failure_raises_wait_error(monkeypatch):
    _popen(monkeypatch, rc=1, err="error: timed out waiting for the condition")

    with pytest.raises(WaitError, match="timed out waiting"):
        KubectlWaiter(KubectlClient()).wait_for(REF, "Available")


def test_cancel_terminates_kubectl_wait(monkeypatch):
    _popen(monkeypatch, rc=0, polls_before_exit=1000)
    token = CancelToken()
    token.cancel()

    with pytest.raises(WaitCancelled):
        KubectlWaiter(KubectlClient(), poll_interval=0.01).wait_for(REF, "Available", cancel=token)

    assert FakePopen.instances[0].terminated is True
