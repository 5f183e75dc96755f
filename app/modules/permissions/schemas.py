from pydantic import BaseModel, ConfigDict
from typing import Optional, List, Dict
from datetime import datetime

from app.modules.permissions.capabilities import Capability, CapabilitySet, ResourceKind


class ResourceRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ResourceKind
    resource_id: str

    @classmethod
    def client(cls, client_id: str) -> "ResourceRef":
        return cls(kind=ResourceKind.CLIENT, resource_id=client_id)

    @classmethod
    def system(cls, resource_type: str) -> "ResourceRef":
        return cls(kind=ResourceKind.SYSTEM, resource_id=resource_type)

    @classmethod
    def company(cls, company_id: str) -> "ResourceRef":
        return cls(kind=ResourceKind.COMPANY, resource_id=company_id)

    @classmethod
    def secret(cls, secret_id: str) -> "ResourceRef":
        return cls(kind=ResourceKind.SECRET, resource_id=secret_id)

    @classmethod
    def vault_group(cls, group_name: str) -> "ResourceRef":
        return cls(kind=ResourceKind.VAULT_GROUP, resource_id=group_name)


class Grant(BaseModel):
    id: Optional[str] = None
    user_id: str
    kind: ResourceKind
    resource_id: str
    capabilities: CapabilitySet
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CapabilityUpdate(BaseModel):
    capability: Capability
    value: bool


class ToggleAllRequest(BaseModel):
    resource_ids: List[str]
    enable: bool


class BulkToggleResponse(BaseModel):
    user_id: str
    enable: bool
    updated: List[str]
    skipped: List[str]
    failed: List[str]
    message: str


class PermissionCheckResponse(BaseModel):
    kind: ResourceKind
    resource_id: str
    action: Capability
    allowed: bool


class PermissionSummaryResponse(BaseModel):
    user_id: str
    is_admin: bool
    has_any_client_view: bool
    grants: Dict[str, List[Grant]]
