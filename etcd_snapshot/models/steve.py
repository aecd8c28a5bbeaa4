import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, Field

from etcd_snapshot.models.utils import ACTIVE_STATE, HttpMethod

if TYPE_CHECKING:
    from etcd_snapshot.models.rancher_client import RancherClient

logger = logging.getLogger(__name__)

STEVE_API_PATH = "/v1"


class SteveState(BaseModel):
    name: str = ""
    error: bool = False
    transitioning: bool = False
    message: str = ""


class ObjectMeta(BaseModel):
    name: str = ""
    namespace: Optional[str] = None
    creation_timestamp: Optional[datetime] = Field(default=None, alias="creationTimestamp")
    resource_version: Optional[str] = Field(default=None, alias="resourceVersion")
    state: SteveState = Field(default_factory=SteveState)
    model_config = {
        'populate_by_name': True,
        'extra': 'allow',
    }


class SteveAPIObject(BaseModel):
    id: str = ""
    type: str = ""
    links: Dict[str, str] = Field(default_factory=dict)
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: Dict[str, Any] = Field(default_factory=dict)
    status: Dict[str, Any] = Field(default_factory=dict)
    model_config = {
        'extra': 'allow',
    }

    @property
    def is_active(self) -> bool:
        return self.metadata.state.name == ACTIVE_STATE

    def summary(self) -> Dict[str, str]:
        created = self.metadata.creation_timestamp.isoformat() if self.metadata.creation_timestamp else "N/A"
        return {"id": self.id, "name": self.metadata.name, "created": created, "state": self.metadata.state.name}

    def __str__(self) -> str:
        summary = self.summary()
        return f"{summary['id']} name={summary['name']} created={summary['created']} state={summary['state']}"


class SteveCollection(BaseModel):
    data: List[SteveAPIObject] = Field(default_factory=list)
    model_config = {
        'extra': 'allow',
    }


class ETCDSnapshotCreate(BaseModel):
    generation: int = 0
    model_config = {
        'extra': 'allow',
    }


class ETCDSnapshotRestore(BaseModel):
    name: str
    generation: int = 1
    restore_rke_config: Optional[str] = Field(default=None, alias="restoreRKEConfig")
    model_config = {
        'populate_by_name': True,
    }


class RKEConfig(BaseModel):
    etcd_snapshot_create: Optional[ETCDSnapshotCreate] = Field(default=None, alias="etcdSnapshotCreate")
    etcd_snapshot_restore: Optional[ETCDSnapshotRestore] = Field(default=None, alias="etcdSnapshotRestore")
    model_config = {
        'populate_by_name': True,
        'extra': 'allow',
    }


class ProvisioningClusterSpec(BaseModel):
    rke_config: Optional[RKEConfig] = Field(default=None, alias="rkeConfig")
    model_config = {
        'populate_by_name': True,
        'extra': 'allow',
    }


class ClusterStatus(BaseModel):
    ready: bool = False
    cluster_name: Optional[str] = Field(default=None, alias="clusterName")
    observed_generation: Optional[int] = Field(default=None, alias="observedGeneration")
    conditions: List[Dict[str, Any]] = Field(default_factory=list)
    model_config = {
        'populate_by_name': True,
        'extra': 'allow',
    }


M = TypeVar("M", bound=BaseModel)


def convert_to_k8s_type(raw: Any, model: Type[M]) -> M:
    """Decode a loosely typed Steve payload (spec or status) into its typed model."""
    return model.model_validate(raw if raw is not None else {})


class SteveTypeClient:
    def __init__(self, client: "RancherClient", steve_type: str, base_path: str = STEVE_API_PATH) -> None:
        self.client = client
        self.steve_type = steve_type
        self.base_path = base_path

    @property
    def path(self) -> str:
        # Steve serves each schema's collection under its plural name
        return f"{self.base_path}/{self.steve_type}s"

    def list(self, params: Optional[Dict[str, Any]] = None) -> SteveCollection:
        response = self.client.call_api(self.path, params=params)
        return SteveCollection.model_validate(response.json())

    def by_id(self, object_id: str) -> SteveAPIObject:
        response = self.client.call_api(f"{self.path}/{object_id}")
        return SteveAPIObject.model_validate(response.json())

    def update(self, existing: SteveAPIObject, spec: BaseModel | Dict[str, Any]) -> SteveAPIObject:
        """PUT the existing object back with its spec replaced."""
        body = existing.model_dump(by_alias=True, exclude_none=True, mode="json")
        if isinstance(spec, BaseModel):
            body["spec"] = spec.model_dump(by_alias=True, exclude_none=True, mode="json")
        else:
            body["spec"] = spec
        update_link = existing.links.get("update", f"{self.path}/{existing.id}")
        logger.info(f"Updating {self.steve_type} {existing.id}")
        response = self.client.call_api(update_link, method=HttpMethod.PUT, json_body=body)
        return SteveAPIObject.model_validate(response.json())


class SteveClient:
    def __init__(self, client: "RancherClient", base_path: str = STEVE_API_PATH) -> None:
        self.client = client
        self.base_path = base_path

    def steve_type(self, steve_type: str) -> SteveTypeClient:
        return SteveTypeClient(self.client, steve_type, self.base_path)

    def proxy_downstream(self, cluster_id: str) -> "SteveClient":
        """Steve accessors served by a downstream cluster through the Rancher proxy."""
        return SteveClient(self.client, f"/k8s/clusters/{cluster_id}{STEVE_API_PATH}")
