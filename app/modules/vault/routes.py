from fastapi import APIRouter, Depends
from app.core.dependencies import (
    get_current_subject,
    get_permission_evaluator,
    require_capability,
)
from app.core.rate_limiter import RateLimiter, get_action_limiter
from app.database.supabase_client import get_supabase
from app.modules.permissions.capabilities import Capability, ResourceKind
from app.modules.permissions.service import PermissionEvaluator
from app.modules.profiles.schemas import Subject
from app.modules.vault.schemas import SecretCreate, SecretUpdate, SecretResponse, VaultGroupResponse
from app.modules.vault.service import VaultService, VAULT_RESOURCE
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/vault", tags=["vault"])


def get_vault_service(
    supabase: Client = Depends(get_supabase),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator),
    limiter: RateLimiter = Depends(get_action_limiter)
) -> VaultService:
    return VaultService(supabase, evaluator, limiter)


@router.get("/secrets", response_model=List[SecretResponse])
async def list_secrets(
    client_id: Optional[str] = None,
    company_id: Optional[str] = None,
    group: Optional[str] = None,
    subject: Subject = Depends(get_current_subject),
    service: VaultService = Depends(get_vault_service)
):
    """List secrets visible to the current user, decrypted with the user's key"""
    return service.list_secrets(subject, client_id=client_id, company_id=company_id, group=group)


@router.post("/secrets", response_model=SecretResponse, status_code=201)
async def create_secret(
    secret_data: SecretCreate,
    subject: Subject = Depends(get_current_subject),
    service: VaultService = Depends(get_vault_service)
):
    """Create a secret"""
    return service.create_secret(subject, secret_data)


@router.get("/secrets/{secret_id}", response_model=SecretResponse)
async def get_secret(
    secret_id: str,
    subject: Subject = Depends(get_current_subject),
    service: VaultService = Depends(get_vault_service)
):
    """Get a secret by ID"""
    return service.get_secret(subject, secret_id)


@router.put("/secrets/{secret_id}", response_model=SecretResponse)
async def update_secret(
    secret_id: str,
    secret_data: SecretUpdate,
    subject: Subject = Depends(get_current_subject),
    service: VaultService = Depends(get_vault_service)
):
    """Update a secret"""
    return service.update_secret(subject, secret_id, secret_data)


@router.delete("/secrets/{secret_id}", status_code=204)
async def delete_secret(
    secret_id: str,
    subject: Subject = Depends(get_current_subject),
    service: VaultService = Depends(get_vault_service)
):
    """Delete a secret"""
    service.delete_secret(subject, secret_id)
    return None


@router.get("/groups", response_model=List[VaultGroupResponse])
async def list_groups(
    subject: Subject = Depends(require_capability(ResourceKind.SYSTEM, Capability.VIEW, VAULT_RESOURCE)),
    service: VaultService = Depends(get_vault_service)
):
    """List saved vault group labels"""
    return service.list_groups()
