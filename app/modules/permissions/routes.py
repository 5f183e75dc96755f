from fastapi import APIRouter, Depends, HTTPException, status
from app.config.permissions_config import SYSTEM_RESOURCES
from app.core.dependencies import (
    get_current_subject,
    get_permission_evaluator,
    get_permission_mutator,
    require_admin,
)
from app.core.errors import GrantMutationError, generic_error_message
from app.modules.permissions.capabilities import Capability, ResourceKind, supports
from app.modules.permissions.schemas import (
    BulkToggleResponse, CapabilityUpdate, Grant,
    PermissionCheckResponse, PermissionSummaryResponse,
    ResourceRef, ToggleAllRequest,
)
from app.modules.permissions.service import PermissionEvaluator, PermissionMutator
from app.modules.profiles.schemas import Subject
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/permissions", tags=["permissions"])


def _validate_resource(kind: ResourceKind, resource_id: str) -> None:
    if kind is ResourceKind.SYSTEM and resource_id not in SYSTEM_RESOURCES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown system resource '{resource_id}'"
        )


def _summary(subject: Subject, evaluator: PermissionEvaluator) -> PermissionSummaryResponse:
    return PermissionSummaryResponse(
        user_id=subject.id,
        is_admin=subject.is_admin,
        has_any_client_view=evaluator.has_any_client_view(subject),
        grants={kind.value: evaluator.list_grants(subject.id, kind) for kind in ResourceKind},
    )


@router.get("/me", response_model=PermissionSummaryResponse)
async def my_permissions(
    subject: Subject = Depends(get_current_subject),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Grants of the current user, plus the admin flag (grants are bypassed while admin)"""
    return _summary(subject, evaluator)


@router.get("/check", response_model=PermissionCheckResponse)
async def check_permission(
    kind: ResourceKind,
    resource_id: str,
    action: Capability,
    subject: Subject = Depends(get_current_subject),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Effective permission of the current user for one action on one resource"""
    allowed = evaluator.can(subject, action, ResourceRef(kind=kind, resource_id=resource_id))
    return PermissionCheckResponse(kind=kind, resource_id=resource_id, action=action, allowed=allowed)


@router.get("/users/{user_id}/{kind}", response_model=List[Grant])
async def list_user_grants(
    user_id: str,
    kind: ResourceKind,
    admin: Subject = Depends(require_admin),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """List stored grants of a user for one resource kind (admin only)"""
    return evaluator.list_grants(user_id, kind)


@router.put("/users/{user_id}/{kind}/{resource_id}", response_model=Optional[Grant])
async def set_user_capability(
    user_id: str,
    kind: ResourceKind,
    resource_id: str,
    update: CapabilityUpdate,
    admin: Subject = Depends(require_admin),
    mutator: PermissionMutator = Depends(get_permission_mutator)
):
    """Set one capability for a user on a resource (admin only). Returns null when nothing was stored."""
    _validate_resource(kind, resource_id)
    if not supports(kind, update.capability):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Capability '{update.capability.value}' is not available on '{kind.value}' resources"
        )
    try:
        return mutator.set_capability(
            user_id, ResourceRef(kind=kind, resource_id=resource_id), update.capability, update.value
        )
    except GrantMutationError as e:
        logger.error(f"Admin {admin.id} failed to update grant for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail=generic_error_message(e.__cause__ or e))


@router.post("/users/{user_id}/{kind}/toggle-all", response_model=BulkToggleResponse)
async def toggle_all_user_capabilities(
    user_id: str,
    kind: ResourceKind,
    request: ToggleAllRequest,
    admin: Subject = Depends(require_admin),
    mutator: PermissionMutator = Depends(get_permission_mutator)
):
    """Enable or disable every capability on each listed resource (admin only).

    Every resource is attempted; failures are listed in the response instead of aborting.
    """
    for resource_id in request.resource_ids:
        _validate_resource(kind, resource_id)
    refs = [ResourceRef(kind=kind, resource_id=rid) for rid in request.resource_ids]
    result = mutator.toggle_all(user_id, refs, request.enable)
    if result.failed:
        result.message = f"Some permissions could not be updated. {result.message}"
    return result
