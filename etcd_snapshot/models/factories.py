import logging
from typing import Dict, Optional

from etcd_snapshot.models.defaults import Defaults
from etcd_snapshot.models.rancher_client import RancherClient
from etcd_snapshot.models.snapshot import RKE1Snapshot, RKE2K3SSnapshot, Snapshot
from etcd_snapshot.models.utils import FLEET_NAMESPACE, ClusterFlavor

logger = logging.getLogger(__name__)


class UnsupportedClusterFlavorError(Exception):
    def __init__(self, supplied_flavor: str):
        super().__init__("Unsupported cluster flavor", supplied_flavor)


def get_snapshot(config: Dict, client: RancherClient, defaults: Optional[Defaults] = None) -> Snapshot:
    flavor = config.get("flavor")
    if flavor == ClusterFlavor.RKE1.value:
        logger.debug(f"Creating RKE1 snapshot helper for cluster {config['name']}")
        return RKE1Snapshot(client, config["name"], defaults)
    if flavor in (ClusterFlavor.RKE2.value, ClusterFlavor.K3S.value):
        logger.debug(f"Creating {flavor} snapshot helper for cluster {config['name']}")
        return RKE2K3SSnapshot(client, config["name"], defaults,
                               namespace=config.get("namespace", FLEET_NAMESPACE))
    logger.error(f"An unsupported cluster flavor was provided: {flavor}")
    raise UnsupportedClusterFlavorError(flavor)
