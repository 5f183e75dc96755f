from supabase import Client
from app.core.errors import generic_error_message
from app.modules.profiles.schemas import ProfileUpdate
from app.modules.profiles.service import ProfileService
from app.modules.users.schemas import AuthUserResponse
from typing import List, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def _to_response(user) -> AuthUserResponse:
    return AuthUserResponse(
        id=str(user.id),
        email=getattr(user, "email", None),
        created_at=getattr(user, "created_at", None),
        last_sign_in_at=getattr(user, "last_sign_in_at", None),
        email_confirmed_at=getattr(user, "email_confirmed_at", None),
    )


def _raise_for(e: Exception, user_id: str = "") -> None:
    message = str(e).lower()
    # validate_uuid in the auth client raises ValueError for malformed ids
    if isinstance(e, ValueError) or "not found" in message:
        raise HTTPException(status_code=404, detail="User not found")
    if "already" in message or "exists" in message:
        raise HTTPException(status_code=400, detail="Email address already in use")
    logger.error(f"Auth admin call failed for user {user_id}: {e}")
    raise HTTPException(status_code=500, detail=generic_error_message(e))


class UserAdminService:
    """Auth admin API (service role): user lookups and email changes."""

    def __init__(self, admin_client: Client, profile_service: Optional[ProfileService] = None):
        self.admin_client = admin_client
        self.profile_service = profile_service

    def list_users(self, page: Optional[int] = None, per_page: Optional[int] = None) -> List[AuthUserResponse]:
        try:
            users = self.admin_client.auth.admin.list_users(page=page, per_page=per_page)
        except Exception as e:
            _raise_for(e)
        return [_to_response(u) for u in users]

    def get_user(self, user_id: str) -> AuthUserResponse:
        try:
            response = self.admin_client.auth.admin.get_user_by_id(user_id)
        except Exception as e:
            _raise_for(e, user_id)
        if not response or not response.user:
            raise HTTPException(status_code=404, detail="User not found")
        return _to_response(response.user)

    def update_email(self, user_id: str, email: str) -> AuthUserResponse:
        """Change the login email of a user, then mirror it on the profile"""
        try:
            response = self.admin_client.auth.admin.update_user_by_id(user_id, {"email": email})
        except Exception as e:
            _raise_for(e, user_id)
        if not response or not response.user:
            raise HTTPException(status_code=404, detail="User not found")
        logger.info(f"Auth email of user {user_id} changed")

        if self.profile_service is not None:
            try:
                self.profile_service.update_profile(user_id, ProfileUpdate(email=email))
            except HTTPException as e:
                # The auth email is the source of truth; a stale profile copy is not fatal.
                logger.warning(f"Profile email of user {user_id} not updated: {e.detail}")
        return _to_response(response.user)
