from enum import Enum

FLEET_NAMESPACE = "fleet-default"
LOCAL_CLUSTER_NAME = "local"
ACTIVE_STATE = "active"

PROVISIONING_STEVE_RESOURCE_TYPE = "provisioning.cattle.io.cluster"
ETCD_SNAPSHOT_STEVE_TYPE = "rke.cattle.io.etcdsnapshot"


class ExitCode(Enum):
    SUCCESS = 0
    FAILURE = 1


class ClusterFlavor(str, Enum):
    RKE1 = "rke1"
    RKE2 = "rke2"
    K3S = "k3s"


HttpMethod = Enum("HttpMethod", ["GET", "POST", "PUT"])
