from typing import Dict, Optional

from etcd_snapshot.models.client_options import ClientOptions
from etcd_snapshot.models.rancher_client import RancherClient

RANCHER_URL = "https://rancher.example.com"


def create_valid_client(url: str = RANCHER_URL, token: Optional[str] = "token-abcde:secretvalue",
                        basic_auth: Optional[Dict] = None,
                        client_options: Optional[ClientOptions] = None) -> RancherClient:
    config = {"url": url, "allow_insecure": True}
    if basic_auth is not None:
        config["basic_auth"] = basic_auth
    else:
        config["token"] = token
    return RancherClient(config, client_options=client_options)


def management_cluster(cluster_id: str, name: str, state: str = "active") -> Dict:
    return {
        "id": cluster_id,
        "type": "cluster",
        "name": name,
        "state": state,
        "actions": {
            "backupEtcd": f"{RANCHER_URL}/v3/clusters/{cluster_id}?action=backupEtcd",
            "restoreFromEtcdBackup": f"{RANCHER_URL}/v3/clusters/{cluster_id}?action=restoreFromEtcdBackup",
        },
    }


def etcd_backup(backup_id: str, cluster_id: str, created: str, state: str = "active") -> Dict:
    return {
        "id": backup_id,
        "type": "etcdBackup",
        "name": backup_id,
        "clusterId": cluster_id,
        "created": created,
        "state": state,
        "filename": f"{backup_id}.zip",
    }


def steve_object(object_id: str, state: str = "active", created: Optional[str] = None,
                 spec: Optional[Dict] = None, status: Optional[Dict] = None) -> Dict:
    namespace, _, name = object_id.rpartition("/")
    metadata = {
        "name": name,
        "namespace": namespace or None,
        "resourceVersion": "4242",
        "state": {"name": state, "error": False, "transitioning": state != "active", "message": ""},
    }
    if created:
        metadata["creationTimestamp"] = created
    return {
        "id": object_id,
        "type": "test",
        "metadata": metadata,
        "spec": spec if spec is not None else {},
        "status": status if status is not None else {},
    }
