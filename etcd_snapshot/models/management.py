import logging
from typing import TYPE_CHECKING, Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, Field

from etcd_snapshot.models.utils import HttpMethod

if TYPE_CHECKING:
    from etcd_snapshot.models.rancher_client import RancherClient

logger = logging.getLogger(__name__)

MANAGEMENT_API_PATH = "/v3"


class ManagementObject(BaseModel):
    id: str
    name: str = ""
    state: str = ""
    actions: Dict[str, str] = Field(default_factory=dict)
    model_config = {
        'populate_by_name': True,
        'extra': 'allow',
    }


class ManagementCluster(ManagementObject):
    pass


class EtcdBackup(ManagementObject):
    cluster_id: str = Field(default="", alias="clusterId")
    created: str = ""
    filename: Optional[str] = None

    def summary(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name, "created": self.created, "state": self.state}

    def __str__(self) -> str:
        return f"{self.id} name={self.name} created={self.created} state={self.state}"


class RestoreFromEtcdBackupInput(BaseModel):
    etcd_backup_id: str = Field(alias="etcdBackupId")
    restore_rke_config: Optional[str] = Field(default=None, alias="restoreRkeConfig")
    model_config = {
        'populate_by_name': True,
    }


class ResourceCollection(BaseModel):
    data: List[Dict[str, Any]] = Field(default_factory=list)
    pagination: Optional[Dict[str, Any]] = None

    @property
    def next_link(self) -> Optional[str]:
        if not self.pagination:
            return None
        return self.pagination.get("next")


T = TypeVar("T", bound=ManagementObject)


class ManagementResource(Generic[T]):
    """
    Accessor for one collection of the management API, e.g. /v3/etcdBackups.
    """

    def __init__(self, client: "RancherClient", collection: str, model: Type[T]) -> None:
        self.client = client
        self.collection = collection
        self.model = model

    @property
    def path(self) -> str:
        return f"{MANAGEMENT_API_PATH}/{self.collection}"

    def list(self, filters: Optional[Dict[str, Any]] = None) -> ResourceCollection:
        response = self.client.call_api(self.path, params=filters)
        return ResourceCollection.model_validate(response.json())

    def list_all(self, filters: Optional[Dict[str, Any]] = None) -> List[T]:
        """Walk every page of the collection, following the pagination links."""
        collection = self.list(filters)
        items = [self.model.model_validate(item) for item in collection.data]
        while collection.next_link:
            logger.debug(f"Following pagination link for {self.collection}: {collection.next_link}")
            response = self.client.call_api(collection.next_link)
            collection = ResourceCollection.model_validate(response.json())
            items.extend(self.model.model_validate(item) for item in collection.data)
        return items

    def by_id(self, resource_id: str) -> T:
        response = self.client.call_api(f"{self.path}/{resource_id}")
        return self.model.model_validate(response.json())

    def action(self, resource: T, action_name: str, body: Optional[BaseModel] = None):
        action_link = resource.actions.get(action_name, f"{self.path}/{resource.id}?action={action_name}")
        json_body = body.model_dump(by_alias=True, exclude_none=True) if body is not None else None
        logger.info(f"Invoking action {action_name} on {self.collection}/{resource.id}")
        return self.client.call_api(action_link, method=HttpMethod.POST, json_body=json_body)


class ClusterResource(ManagementResource[ManagementCluster]):
    def action_backup_etcd(self, cluster: ManagementCluster):
        return self.action(cluster, "backupEtcd")

    def action_restore_from_etcd_backup(self, cluster: ManagementCluster,
                                        restore_input: RestoreFromEtcdBackupInput):
        return self.action(cluster, "restoreFromEtcdBackup", restore_input)


class ManagementClient:
    def __init__(self, client: "RancherClient") -> None:
        self.cluster = ClusterResource(client, "clusters", ManagementCluster)
        self.etcd_backup: ManagementResource[EtcdBackup] = ManagementResource(client, "etcdBackups", EtcdBackup)
