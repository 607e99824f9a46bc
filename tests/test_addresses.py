from __future__ import annotations

import types

from oci_discover.auth.providers import AuthContext
from oci_discover.model import NoAddress, NoAttachment, Resolved, Target
from oci_discover.oci import addresses

CTX = AuthContext(method="instance", config_dict=None, signer=object(), profile=None, tenancy_ocid=None)
TARGET = Target(compartment_id="ocid1.compartment.oc1..test", region="ap-singapore-2")


class FakeCompute:
    def __init__(self, attachments=None, error=None):
        self.attachments = attachments or {}
        self.error = error
        self.calls = []

    def list_vnic_attachments(self, compartment_id, instance_id=None):
        self.calls.append((compartment_id, instance_id))
        if self.error:
            raise self.error
        data = [types.SimpleNamespace(vnic_id=v) for v in self.attachments.get(instance_id, [])]
        return types.SimpleNamespace(data=data)


class FakeNetwork:
    def __init__(self, vnics=None, error=None):
        self.vnics = vnics or {}
        self.error = error
        self.calls = []

    def get_vnic(self, vnic_id):
        self.calls.append(vnic_id)
        if self.error:
            raise self.error
        return types.SimpleNamespace(data=types.SimpleNamespace(private_ip=self.vnics.get(vnic_id)))


def _patch(monkeypatch, compute, network) -> None:
    monkeypatch.setattr(addresses, "get_compute_client", lambda ctx, region, timeout=None: compute)
    monkeypatch.setattr(addresses, "get_network_client", lambda ctx, region, timeout=None: network)


def test_resolves_first_vnic_private_ip(monkeypatch) -> None:
    compute = FakeCompute({"id1": ["vnic-a", "vnic-b"]})
    network = FakeNetwork({"vnic-a": "10.0.0.5", "vnic-b": "10.0.1.5"})
    _patch(monkeypatch, compute, network)

    assert addresses.resolve_private_ip(CTX, TARGET, "id1") == Resolved("10.0.0.5")
    assert compute.calls == [(TARGET.compartment_id, "id1")]
    assert network.calls == ["vnic-a"]


def test_no_attachment_skips_vnic_lookup(monkeypatch) -> None:
    network = FakeNetwork()
    _patch(monkeypatch, FakeCompute({}), network)

    assert addresses.resolve_private_ip(CTX, TARGET, "id1") == NoAttachment()
    assert network.calls == []


def test_attachment_lookup_error_is_no_attachment(monkeypatch) -> None:
    network = FakeNetwork()
    _patch(monkeypatch, FakeCompute(error=TimeoutError("read timed out")), network)

    assert addresses.resolve_private_ip(CTX, TARGET, "id1") == NoAttachment()
    assert network.calls == []


def test_vnic_without_ip_is_no_address(monkeypatch) -> None:
    _patch(monkeypatch, FakeCompute({"id1": ["vnic-a"]}), FakeNetwork({"vnic-a": None}))

    assert addresses.resolve_private_ip(CTX, TARGET, "id1") == NoAddress()


def test_vnic_lookup_error_is_no_address(monkeypatch) -> None:
    _patch(monkeypatch, FakeCompute({"id1": ["vnic-a"]}), FakeNetwork(error=ConnectionError("reset")))

    result = addresses.resolve_private_ip(CTX, TARGET, "id1")
    assert result == NoAddress()
    assert result != NoAttachment()


def test_annotations_keep_failure_stages_apart() -> None:
    assert NoAttachment().annotation() == "ERROR: NO_VNIC"
    assert NoAddress().annotation() == "ERROR: NO_IP"
    assert Resolved("10.0.0.5").annotation() == "10.0.0.5"
