import pytest
import requests
from pydantic import ValidationError

from etcd_snapshot.models.clusters import get_provisioning_cluster_by_name
from etcd_snapshot.models.defaults import Defaults
from etcd_snapshot.models.polling import PollTimeoutError
from etcd_snapshot.models.snapshot import FailedToCreateSnapshot, NoSnapshotsFoundError, RKE2K3SSnapshot
from etcd_snapshot.models.steve import ETCDSnapshotRestore
from tests.utils import RANCHER_URL, create_valid_client, management_cluster, steve_object

CLUSTER_NAME = "rke2-cluster"
CLUSTER_OBJECT_ID = f"fleet-default/{CLUSTER_NAME}"
PROVISIONING_URL = f"{RANCHER_URL}/v1/provisioning.cattle.io.clusters/{CLUSTER_OBJECT_ID}"
SNAPSHOTS_URL = f"{RANCHER_URL}/v1/rke.cattle.io.etcdsnapshots"
LOCAL_SNAPSHOTS_URL = f"{RANCHER_URL}/k8s/clusters/local/v1/rke.cattle.io.etcdsnapshots"

BASE_SPEC = {
    "kubernetesVersion": "v1.28.9+rke2r1",
    "rkeConfig": {"machinePools": [{"name": "pool1", "quantity": 3}]},
}


def snapshot_name(node: str, stamp: int) -> str:
    return f"{CLUSTER_NAME}-etcd-snapshot-{node}-{stamp}-local"


@pytest.fixture
def client(requests_mock):
    requests_mock.get(f"{RANCHER_URL}/v3/clusters", json={"data": [management_cluster("local", "local")]})
    return create_valid_client()


@pytest.fixture
def rke2_snapshot(client):
    return RKE2K3SSnapshot(client, CLUSTER_NAME, Defaults({"one_minute": 2, "five_minute": 10,
                                                           "fifteen_minute": 5}))


def test_get_provisioning_cluster_by_name(client, requests_mock):
    requests_mock.get(PROVISIONING_URL, json=steve_object(CLUSTER_OBJECT_ID, spec=BASE_SPEC))

    spec, cluster_object = get_provisioning_cluster_by_name(client, CLUSTER_NAME, "fleet-default")

    assert cluster_object.id == CLUSTER_OBJECT_ID
    assert spec.rke_config.etcd_snapshot_create is None
    assert spec.model_extra["kubernetesVersion"] == "v1.28.9+rke2r1"


def test_list_uses_local_cluster_proxy_and_sorts_oldest_first(rke2_snapshot, requests_mock):
    requests_mock.get(LOCAL_SNAPSHOTS_URL, json={"data": [
        steve_object(f"fleet-default/{snapshot_name('node2', 1714644000)}", created="2024-05-02T10:00:00Z"),
        steve_object("fleet-default/other-cluster-etcd-snapshot-node1-1714557600-local",
                     created="2024-05-01T09:00:00Z"),
        steve_object(f"fleet-default/{snapshot_name('node1', 1714557600)}", created="2024-05-01T10:00:00Z"),
    ]})

    snapshots = rke2_snapshot.list()

    assert [snapshot.metadata.name for snapshot in snapshots] == [
        snapshot_name("node1", 1714557600), snapshot_name("node2", 1714644000)
    ]
    assert requests_mock.last_request.url == LOCAL_SNAPSHOTS_URL


def test_latest_and_restore_request(rke2_snapshot, requests_mock):
    requests_mock.get(LOCAL_SNAPSHOTS_URL, json={"data": [
        steve_object(f"fleet-default/{snapshot_name('node1', 1714557600)}", created="2024-05-01T10:00:00Z"),
        steve_object(f"fleet-default/{snapshot_name('node1', 1714644000)}", created="2024-05-02T10:00:00Z"),
    ]})

    assert rke2_snapshot.latest().metadata.name == snapshot_name("node1", 1714644000)
    assert rke2_snapshot.build_restore_request(restore_config="kubernetesVersion", generation=3) == \
        ETCDSnapshotRestore(name=snapshot_name("node1", 1714644000), generation=3,
                            restore_rke_config="kubernetesVersion")
    assert rke2_snapshot.build_restore_request(snapshot_name="explicit").name == "explicit"


def test_latest_without_snapshots(rke2_snapshot, requests_mock):
    requests_mock.get(LOCAL_SNAPSHOTS_URL, json={"data": []})
    with pytest.raises(NoSnapshotsFoundError):
        rke2_snapshot.latest()


def _mock_snapshot_poll(requests_mock, state="active"):
    snapshot_id = f"fleet-default/{snapshot_name('node1', 1714557600)}"
    requests_mock.get(SNAPSHOTS_URL, json={"data": [steve_object(snapshot_id, state=state)]})
    requests_mock.get(f"{SNAPSHOTS_URL}/{snapshot_id}", json=steve_object(snapshot_id, state=state))


@pytest.mark.parametrize("existing_rke_config,expected_rke_config", [
    (
        {"machinePools": [{"name": "pool1", "quantity": 3}]},
        {"machinePools": [{"name": "pool1", "quantity": 3}], "etcdSnapshotCreate": {"generation": 1}},
    ),
    (
        {"machinePools": [], "etcdSnapshotCreate": {"generation": 3}},
        {"machinePools": [], "etcdSnapshotCreate": {"generation": 4}},
    ),
    (
        None,
        {"etcdSnapshotCreate": {"generation": 1}},
    ),
])
def test_create_sets_snapshot_generation(rke2_snapshot, requests_mock, fake_clock,
                                         existing_rke_config, expected_rke_config):
    spec = {"kubernetesVersion": "v1.28.9+rke2r1"}
    if existing_rke_config is not None:
        spec["rkeConfig"] = existing_rke_config
    requests_mock.get(PROVISIONING_URL, json=steve_object(CLUSTER_OBJECT_ID, spec=spec))
    update = requests_mock.put(PROVISIONING_URL, json=steve_object(CLUSTER_OBJECT_ID, state="updating"))
    _mock_snapshot_poll(requests_mock)

    rke2_snapshot.create()

    body = update.last_request.json()
    assert body["spec"]["rkeConfig"] == expected_rke_config
    assert body["spec"]["kubernetesVersion"] == "v1.28.9+rke2r1"
    assert body["metadata"]["resourceVersion"] == "4242"
    assert fake_clock.sleeps == []


def test_create_waits_for_cluster_to_be_active(rke2_snapshot, requests_mock, fake_clock):
    requests_mock.get(PROVISIONING_URL, [
        {"json": steve_object(CLUSTER_OBJECT_ID, spec=BASE_SPEC)},
        {"json": steve_object(CLUSTER_OBJECT_ID, state="updating", spec=BASE_SPEC)},
        {"status_code": 500, "json": {"message": "boom"}},
        {"json": steve_object(CLUSTER_OBJECT_ID, spec=BASE_SPEC)},
    ])
    requests_mock.put(PROVISIONING_URL, json=steve_object(CLUSTER_OBJECT_ID, state="updating"))
    _mock_snapshot_poll(requests_mock)

    result = rke2_snapshot.create()

    assert fake_clock.sleeps == [5, 5]
    assert "generation 1" in result


def test_create_retries_through_undecodable_snapshot_reads(rke2_snapshot, requests_mock, fake_clock):
    snapshot_id = f"fleet-default/{snapshot_name('node1', 1714557600)}"
    malformed = steve_object(snapshot_id)
    malformed["metadata"]["state"] = None
    requests_mock.get(PROVISIONING_URL, json=steve_object(CLUSTER_OBJECT_ID, spec=BASE_SPEC))
    requests_mock.put(PROVISIONING_URL, json=steve_object(CLUSTER_OBJECT_ID, state="updating"))
    requests_mock.get(SNAPSHOTS_URL, json={"data": [steve_object(snapshot_id)]})
    requests_mock.get(f"{SNAPSHOTS_URL}/{snapshot_id}", [
        {"json": malformed},
        {"json": steve_object(snapshot_id)},
    ])

    result = rke2_snapshot.create()

    assert fake_clock.sleeps == [5]
    assert "generation 1" in result


def test_create_times_out_without_active_snapshot(rke2_snapshot, requests_mock, fake_clock):
    requests_mock.get(PROVISIONING_URL, json=steve_object(CLUSTER_OBJECT_ID, spec=BASE_SPEC))
    requests_mock.put(PROVISIONING_URL, json=steve_object(CLUSTER_OBJECT_ID))
    _mock_snapshot_poll(requests_mock, state="failed")

    with pytest.raises(PollTimeoutError):
        rke2_snapshot.create()
    assert fake_clock.now == 10


def test_create_wraps_update_failure(rke2_snapshot, requests_mock):
    requests_mock.get(PROVISIONING_URL, json=steve_object(CLUSTER_OBJECT_ID, spec=BASE_SPEC))
    requests_mock.put(PROVISIONING_URL, status_code=409, json={"code": "Conflict"})

    with pytest.raises(FailedToCreateSnapshot) as excinfo:
        rke2_snapshot.create()
    assert any(CLUSTER_NAME in note for note in excinfo.value.__notes__)


def test_restore_sets_directive_and_waits_for_cluster(rke2_snapshot, requests_mock, fake_clock):
    requests_mock.get(PROVISIONING_URL, [
        {"json": steve_object(CLUSTER_OBJECT_ID, spec=BASE_SPEC)},
        {"json": steve_object(CLUSTER_OBJECT_ID, spec=BASE_SPEC)},
        {"json": steve_object(CLUSTER_OBJECT_ID, state="updating", spec=BASE_SPEC)},
        {"json": steve_object(CLUSTER_OBJECT_ID, state="updating", spec=BASE_SPEC)},
        {"json": steve_object(CLUSTER_OBJECT_ID, spec=BASE_SPEC, status={"ready": True})},
    ])
    update = requests_mock.put(PROVISIONING_URL, json=steve_object(CLUSTER_OBJECT_ID, spec=BASE_SPEC))
    restore_request = ETCDSnapshotRestore(name=snapshot_name("node1", 1714557600), generation=2,
                                          restore_rke_config="all")

    result = rke2_snapshot.restore(restore_request)

    assert update.last_request.json()["spec"]["rkeConfig"]["etcdSnapshotRestore"] == {
        "name": snapshot_name("node1", 1714557600),
        "generation": 2,
        "restoreRKEConfig": "all",
    }
    assert fake_clock.sleeps == [0.5, 0.5]
    assert snapshot_name("node1", 1714557600) in result


def test_restore_read_errors_abort_the_wait(rke2_snapshot, requests_mock, fake_clock):
    requests_mock.get(PROVISIONING_URL, [
        {"json": steve_object(CLUSTER_OBJECT_ID, spec=BASE_SPEC)},
        {"status_code": 500, "json": {"message": "boom"}},
    ])
    requests_mock.put(PROVISIONING_URL, json=steve_object(CLUSTER_OBJECT_ID, spec=BASE_SPEC))

    with pytest.raises(requests.HTTPError):
        rke2_snapshot.restore(ETCDSnapshotRestore(name="any-snapshot"))
    assert fake_clock.sleeps == []


def test_restore_undecodable_status_aborts_the_wait(rke2_snapshot, requests_mock, fake_clock):
    requests_mock.get(PROVISIONING_URL, [
        {"json": steve_object(CLUSTER_OBJECT_ID, spec=BASE_SPEC)},
        {"json": steve_object(CLUSTER_OBJECT_ID, spec=BASE_SPEC, status={"ready": "not-a-bool"})},
    ])
    requests_mock.put(PROVISIONING_URL, json=steve_object(CLUSTER_OBJECT_ID, spec=BASE_SPEC))

    with pytest.raises(ValidationError):
        rke2_snapshot.restore(ETCDSnapshotRestore(name="any-snapshot"))
    assert fake_clock.sleeps == []


def test_restore_times_out_when_cluster_never_recovers(rke2_snapshot, requests_mock, fake_clock):
    requests_mock.get(PROVISIONING_URL, [
        {"json": steve_object(CLUSTER_OBJECT_ID, spec=BASE_SPEC)},
        {"json": steve_object(CLUSTER_OBJECT_ID, state="error", spec=BASE_SPEC)},
    ])
    requests_mock.put(PROVISIONING_URL, json=steve_object(CLUSTER_OBJECT_ID, spec=BASE_SPEC))

    with pytest.raises(PollTimeoutError) as excinfo:
        rke2_snapshot.restore(ETCDSnapshotRestore(name="any-snapshot"))
    assert "active after restore" in excinfo.value.args[0]
    assert fake_clock.now == 5
