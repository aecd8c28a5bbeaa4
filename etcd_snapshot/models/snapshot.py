import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import ValidationError
from requests.exceptions import RequestException

from etcd_snapshot.models.clusters import get_cluster_id_by_name, get_provisioning_cluster_by_name
from etcd_snapshot.models.defaults import Defaults
from etcd_snapshot.models.management import EtcdBackup, RestoreFromEtcdBackupInput
from etcd_snapshot.models.polling import poll_until_timeout
from etcd_snapshot.models.rancher_client import RancherClient
from etcd_snapshot.models.steve import (ClusterStatus, ETCDSnapshotCreate, ETCDSnapshotRestore, RKEConfig,
                                        SteveAPIObject, convert_to_k8s_type)
from etcd_snapshot.models.utils import (ACTIVE_STATE, ETCD_SNAPSHOT_STEVE_TYPE, FLEET_NAMESPACE, LOCAL_CLUSTER_NAME,
                                        PROVISIONING_STEVE_RESOURCE_TYPE)

logger = logging.getLogger(__name__)

RKE1_CREATE_POLL_INTERVAL = 5
RKE1_RESTORE_START_POLL_INTERVAL = 1
RKE1_RESTORE_FINISH_POLL_INTERVAL = 5
RKE2_CREATE_POLL_INTERVAL = 5
RKE2_RESTORE_POLL_INTERVAL = 0.5


class FailedToCreateSnapshot(Exception):
    pass


class FailedToRestoreSnapshot(Exception):
    pass


class NoSnapshotsFoundError(Exception):
    def __init__(self, cluster_name: str):
        super().__init__("No snapshots found for cluster", cluster_name)


class Snapshot(ABC):
    """
    Interface for listing, creating and restoring the etcd snapshots of one downstream cluster.
    """
    def __init__(self, client: RancherClient, cluster_name: str, defaults: Optional[Defaults] = None) -> None:
        self.client = client
        self.cluster_name = cluster_name
        self.defaults = defaults if defaults is not None else Defaults()

    @abstractmethod
    def list(self) -> List:
        """List the existing snapshots of the cluster."""
        pass

    @abstractmethod
    def create(self) -> str:
        """Take a snapshot and wait until it is active."""
        pass

    @abstractmethod
    def restore(self, restore_request) -> str:
        """Restore a snapshot and wait for the cluster to come back active."""
        pass

    @abstractmethod
    def latest(self):
        """Return the most recent snapshot."""
        pass

    @abstractmethod
    def build_restore_request(self, snapshot_name: Optional[str] = None, restore_config: Optional[str] = None,
                              generation: int = 1):
        """Build the flavor specific restore request for a snapshot, the latest one if no name is given."""
        pass


class RKE1Snapshot(Snapshot):
    """
    Snapshots of a cluster managed through the legacy management API.
    """

    def list(self) -> List[EtcdBackup]:
        cluster_id = get_cluster_id_by_name(self.client, self.cluster_name)
        backups = self.client.management.etcd_backup.list_all({"clusterId": cluster_id})
        snapshots = [backup for backup in backups if cluster_id in backup.name]
        # RFC3339 timestamps sort lexically, newest first
        snapshots.sort(key=lambda backup: backup.created, reverse=True)
        return snapshots

    def latest(self) -> EtcdBackup:
        snapshots = self.list()
        if not snapshots:
            raise NoSnapshotsFoundError(self.cluster_name)
        return snapshots[0]

    def build_restore_request(self, snapshot_name: Optional[str] = None, restore_config: Optional[str] = None,
                              generation: int = 1) -> RestoreFromEtcdBackupInput:
        if snapshot_name is None:
            backup_id = self.latest().id
        else:
            matches = [backup for backup in self.list() if snapshot_name in (backup.id, backup.name)]
            if not matches:
                raise NoSnapshotsFoundError(f"{self.cluster_name}/{snapshot_name}")
            backup_id = matches[0].id
        return RestoreFromEtcdBackupInput(etcd_backup_id=backup_id, restore_rke_config=restore_config)

    def _all_backups_active(self, cluster_id: str) -> bool:
        try:
            backups = self.client.management.etcd_backup.list_all({"clusterId": cluster_id})
            for backup in backups:
                if self.client.management.etcd_backup.by_id(backup.id).state != ACTIVE_STATE:
                    return False
        except (RequestException, ValidationError) as e:
            logger.debug(f"Error checking snapshot states for cluster {cluster_id}: {e}")
            return False
        logger.info("All snapshots in the cluster are in an active state!")
        return True

    def _cluster_state_matches(self, cluster_id: str, active: bool) -> bool:
        try:
            cluster = self.client.management.cluster.by_id(cluster_id)
        except (RequestException, ValidationError) as e:
            logger.debug(f"Error fetching cluster {cluster_id}: {e}")
            return False
        return (cluster.state == ACTIVE_STATE) == active

    def create(self) -> str:
        cluster_id = get_cluster_id_by_name(self.client, self.cluster_name)
        cluster = self.client.management.cluster.by_id(cluster_id)

        logger.info("Creating snapshot...")
        try:
            self.client.management.cluster.action_backup_etcd(cluster)
        except RequestException as e:
            ex = FailedToCreateSnapshot()
            ex.add_note(f"Unable to back up etcd of cluster {self.cluster_name}, cause {str(e)}")
            raise ex

        poll_until_timeout(lambda: self._all_backups_active(cluster_id),
                           interval=RKE1_CREATE_POLL_INTERVAL,
                           timeout=self.defaults.five_minute_timeout,
                           description=f"snapshots of cluster {self.cluster_name} to become active")
        return f"Snapshot of cluster {self.cluster_name} created"

    def restore(self, restore_request: RestoreFromEtcdBackupInput) -> str:
        cluster_id = get_cluster_id_by_name(self.client, self.cluster_name)
        cluster = self.client.management.cluster.by_id(cluster_id)

        logger.info(f"Restoring snapshot: {restore_request.etcd_backup_id}")
        try:
            self.client.management.cluster.action_restore_from_etcd_backup(cluster, restore_request)
        except RequestException as e:
            ex = FailedToRestoreSnapshot()
            ex.add_note(f"Unable to restore {restore_request.etcd_backup_id} on cluster {self.cluster_name}, "
                        f"cause {str(e)}")
            raise ex

        poll_until_timeout(lambda: self._cluster_state_matches(cluster.id, active=False),
                           interval=RKE1_RESTORE_START_POLL_INTERVAL,
                           timeout=self.defaults.one_minute_timeout,
                           description=f"cluster {self.cluster_name} to start restoring")
        # RKE1 nodes are slow to rejoin after a restore, hence the long wait
        poll_until_timeout(lambda: self._cluster_state_matches(cluster.id, active=True),
                           interval=RKE1_RESTORE_FINISH_POLL_INTERVAL,
                           timeout=self.defaults.thirty_minute_timeout,
                           description=f"cluster {self.cluster_name} to be active after restore")
        return f"Snapshot {restore_request.etcd_backup_id} restored on cluster {self.cluster_name}"


class RKE2K3SSnapshot(Snapshot):
    """
    Snapshots of an RKE2 or K3s cluster, driven by directives on the provisioning cluster spec.
    """

    def __init__(self, client: RancherClient, cluster_name: str, defaults: Optional[Defaults] = None,
                 namespace: str = FLEET_NAMESPACE) -> None:
        super().__init__(client, cluster_name, defaults)
        self.namespace = namespace

    def list(self) -> List[SteveAPIObject]:
        local_cluster_id = get_cluster_id_by_name(self.client, LOCAL_CLUSTER_NAME)
        steve_client = self.client.steve.proxy_downstream(local_cluster_id)
        collection = steve_client.steve_type(ETCD_SNAPSHOT_STEVE_TYPE).list()
        snapshots = [snapshot for snapshot in collection.data if self.cluster_name in snapshot.metadata.name]
        # Oldest first
        snapshots.sort(key=lambda snapshot: (snapshot.metadata.creation_timestamp is not None,
                                             snapshot.metadata.creation_timestamp))
        return snapshots

    def latest(self) -> SteveAPIObject:
        snapshots = self.list()
        if not snapshots:
            raise NoSnapshotsFoundError(self.cluster_name)
        return snapshots[-1]

    def build_restore_request(self, snapshot_name: Optional[str] = None, restore_config: Optional[str] = None,
                              generation: int = 1) -> ETCDSnapshotRestore:
        if snapshot_name is None:
            snapshot_name = self.latest().metadata.name
        return ETCDSnapshotRestore(name=snapshot_name, generation=generation, restore_rke_config=restore_config)

    def _snapshot_and_cluster_active(self) -> bool:
        snapshot_client = self.client.steve.steve_type(ETCD_SNAPSHOT_STEVE_TYPE)
        try:
            collection = snapshot_client.list()
            _, cluster_object = get_provisioning_cluster_by_name(self.client, self.cluster_name, self.namespace)
            for snapshot in collection.data:
                if snapshot_client.by_id(snapshot.id).is_active and cluster_object.is_active:
                    logger.info("All snapshots in the cluster are in an active state!")
                    return True
        except (RequestException, ValidationError) as e:
            logger.debug(f"Error checking snapshot states for cluster {self.cluster_name}: {e}")
        return False

    def _cluster_state_matches(self, cluster_id: str, active: bool) -> bool:
        cluster_object = self.client.steve.steve_type(PROVISIONING_STEVE_RESOURCE_TYPE).by_id(cluster_id)
        # An undecodable status aborts the wait
        convert_to_k8s_type(cluster_object.status, ClusterStatus)
        return cluster_object.is_active == active

    def create(self) -> str:
        cluster_spec, cluster_object = get_provisioning_cluster_by_name(self.client, self.cluster_name,
                                                                        self.namespace)
        if cluster_spec.rke_config is None:
            cluster_spec.rke_config = RKEConfig(etcd_snapshot_create=ETCDSnapshotCreate(generation=1))
        elif cluster_spec.rke_config.etcd_snapshot_create is None:
            cluster_spec.rke_config.etcd_snapshot_create = ETCDSnapshotCreate(generation=1)
        else:
            cluster_spec.rke_config.etcd_snapshot_create = ETCDSnapshotCreate(
                generation=cluster_spec.rke_config.etcd_snapshot_create.generation + 1)

        logger.info("Creating snapshot...")
        try:
            self.client.steve.steve_type(PROVISIONING_STEVE_RESOURCE_TYPE).update(cluster_object, cluster_spec)
        except RequestException as e:
            ex = FailedToCreateSnapshot()
            ex.add_note(f"Unable to request a snapshot of cluster {self.cluster_name}, cause {str(e)}")
            raise ex

        poll_until_timeout(self._snapshot_and_cluster_active,
                           interval=RKE2_CREATE_POLL_INTERVAL,
                           timeout=self.defaults.five_minute_timeout,
                           description=f"a snapshot of cluster {self.cluster_name} to become active")
        return (f"Snapshot of cluster {self.cluster_name} created "
                f"(generation {cluster_spec.rke_config.etcd_snapshot_create.generation})")

    def restore(self, restore_request: ETCDSnapshotRestore) -> str:
        cluster_spec, cluster_object = get_provisioning_cluster_by_name(self.client, self.cluster_name,
                                                                        self.namespace)
        if cluster_spec.rke_config is None:
            cluster_spec.rke_config = RKEConfig()
        cluster_spec.rke_config.etcd_snapshot_restore = restore_request

        logger.info(f"Restoring snapshot: {restore_request.name}")
        try:
            updated_cluster = self.client.steve.steve_type(PROVISIONING_STEVE_RESOURCE_TYPE).update(cluster_object,
                                                                                                   cluster_spec)
        except RequestException as e:
            ex = FailedToRestoreSnapshot()
            ex.add_note(f"Unable to restore {restore_request.name} on cluster {self.cluster_name}, cause {str(e)}")
            raise ex

        poll_until_timeout(lambda: self._cluster_state_matches(updated_cluster.id, active=False),
                           interval=RKE2_RESTORE_POLL_INTERVAL,
                           timeout=self.defaults.one_minute_timeout,
                           description=f"cluster {self.cluster_name} to start restoring")
        poll_until_timeout(lambda: self._cluster_state_matches(updated_cluster.id, active=True),
                           interval=RKE2_RESTORE_POLL_INTERVAL,
                           timeout=self.defaults.fifteen_minute_timeout,
                           description=f"cluster {self.cluster_name} to be active after restore")
        return f"Snapshot {restore_request.name} restored on cluster {self.cluster_name}"
