"""
Core dependencies for route protection and permission checking
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.database.supabase_client import SupabaseClient, get_supabase, get_service_supabase
from app.modules.auth.service import AuthService
from app.modules.permissions.capabilities import Capability, ResourceKind
from app.modules.permissions.schemas import ResourceRef
from app.modules.permissions.service import PermissionEvaluator, PermissionMutator
from app.modules.profiles.schemas import Subject
from app.modules.profiles.service import ProfileService
from supabase import Client
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def _get_request_cache(request: Request) -> Dict[str, Any]:
    """Return request-scoped cache for access data (grant rows per user and resource kind)."""
    if not hasattr(request.state, "access_cache"):
        request.state.access_cache = {}
    return request.state.access_cache


def get_access_cache(request: Request) -> Dict[str, Any]:
    return _get_request_cache(request)


def get_profile_service(supabase: Client = Depends(get_supabase)) -> ProfileService:
    return ProfileService(supabase)


def get_auth_service() -> AuthService:
    # Profile bootstrap at registration runs before the user has a session, hence the service client.
    return AuthService(
        SupabaseClient.get_client(),
        ProfileService(get_service_supabase()),
        session_client_factory=SupabaseClient.create_session_client,
        admin_client=get_service_supabase() if SupabaseClient.has_service_role() else None,
    )


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    user_data = auth_service.get_current_user(token)
    return user_data


def get_current_subject(
    user_data: dict = Depends(get_current_user_id),
    profile_service: ProfileService = Depends(get_profile_service)
) -> Subject:
    """Acting subject: auth user id plus the admin flag from its profile"""
    return profile_service.get_subject(user_data)


def get_permission_evaluator(
    request: Request,
    supabase: Client = Depends(get_supabase)
) -> PermissionEvaluator:
    return PermissionEvaluator(supabase, _get_request_cache(request))


def get_permission_mutator(supabase: Client = Depends(get_supabase)) -> PermissionMutator:
    return PermissionMutator(supabase)


def require_admin(subject: Subject = Depends(get_current_subject)) -> Subject:
    """Dependency allowing administrators only"""
    if not subject.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required"
        )
    return subject


def require_capability(kind: ResourceKind, action: Capability, resource_id: Optional[str] = None):
    """Factory function to create a capability check dependency.

    With resource_id the resource is fixed (e.g. the "vault" system resource);
    without it the route's resource_id path parameter is used.
    """
    def check_capability(
        request: Request,
        subject: Subject = Depends(get_current_subject),
        evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
    ) -> Subject:
        target = resource_id or request.path_params.get("resource_id")
        if not target:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing resource id")
        if not evaluator.can(subject, action, ResourceRef(kind=kind, resource_id=target)):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required: {kind.value}:{action.value}"
            )
        return subject
    return check_capability
