from fastapi import APIRouter, Depends, HTTPException, status
from app.core.dependencies import require_admin
from app.database.supabase_client import SupabaseClient, get_service_supabase
from app.modules.profiles.schemas import Subject
from app.modules.profiles.service import ProfileService
from app.modules.users.schemas import AuthUserEmailUpdate, AuthUserResponse
from app.modules.users.service import UserAdminService
from typing import List, Optional

router = APIRouter(prefix="/users", tags=["users"])


def get_user_admin_service() -> UserAdminService:
    if not SupabaseClient.has_service_role():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="User administration is not configured"
        )
    service_client = get_service_supabase()
    return UserAdminService(service_client, ProfileService(service_client))


@router.get("", response_model=List[AuthUserResponse])
async def list_users(
    page: Optional[int] = None,
    per_page: Optional[int] = None,
    admin: Subject = Depends(require_admin),
    service: UserAdminService = Depends(get_user_admin_service)
):
    """List auth users (admin only)"""
    return service.list_users(page=page, per_page=per_page)


@router.get("/{user_id}", response_model=AuthUserResponse)
async def get_user(
    user_id: str,
    admin: Subject = Depends(require_admin),
    service: UserAdminService = Depends(get_user_admin_service)
):
    """Get an auth user by id (admin only)"""
    return service.get_user(user_id)


@router.put("/{user_id}/email", response_model=AuthUserResponse)
async def update_user_email(
    user_id: str,
    update: AuthUserEmailUpdate,
    admin: Subject = Depends(require_admin),
    service: UserAdminService = Depends(get_user_admin_service)
):
    """Change a user's login email (admin only); the profile copy follows"""
    return service.update_email(user_id, str(update.email))
