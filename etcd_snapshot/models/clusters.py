import logging
from typing import Tuple

from etcd_snapshot.models.rancher_client import RancherClient
from etcd_snapshot.models.steve import ProvisioningClusterSpec, SteveAPIObject, convert_to_k8s_type
from etcd_snapshot.models.utils import PROVISIONING_STEVE_RESOURCE_TYPE

logger = logging.getLogger(__name__)


class ClusterNotFoundError(Exception):
    def __init__(self, cluster_name: str):
        super().__init__("Cluster not found", cluster_name)


def get_cluster_id_by_name(client: RancherClient, cluster_name: str) -> str:
    clusters = client.management.cluster.list_all({"name": cluster_name})
    for cluster in clusters:
        if cluster.name == cluster_name:
            logger.debug(f"Resolved cluster {cluster_name} to ID {cluster.id}")
            return cluster.id
    raise ClusterNotFoundError(cluster_name)


def get_provisioning_cluster_by_name(client: RancherClient, cluster_name: str,
                                     namespace: str) -> Tuple[ProvisioningClusterSpec, SteveAPIObject]:
    """
    Fetch a provisioning cluster through Steve, returning its decoded spec alongside the raw object that
    must be handed back on update.
    """
    steve_object = client.steve.steve_type(PROVISIONING_STEVE_RESOURCE_TYPE).by_id(f"{namespace}/{cluster_name}")
    return convert_to_k8s_type(steve_object.spec, ProvisioningClusterSpec), steve_object
