from supabase import Client
from app.core.errors import generic_error_message
from app.core.sanitizer import sanitize
from app.modules.profiles.schemas import ProfileResponse, ProfileUpdate, Subject
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def _normalize(row: dict) -> dict:
    # is_admin is nullable in storage
    return {**row, "is_admin": bool(row.get("is_admin"))}


class ProfileService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_profile(self, user_id: str) -> Optional[ProfileResponse]:
        """Get the profile of an auth user, None when it does not exist yet"""
        result = self.supabase.table("user_profiles")\
            .select("*")\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        if not result.data:
            return None
        return ProfileResponse(**_normalize(result.data[0]))

    def get_subject(self, user_data: Dict[str, Any]) -> Subject:
        """Build the acting subject from the auth user and its profile.

        A missing or unreadable profile yields a non-admin subject, so the
        permission engine falls back to explicit grants only.
        """
        try:
            profile = self.get_profile(user_data["id"])
        except Exception as e:
            logger.error(f"Error loading profile for user {user_data['id']}: {e}")
            profile = None
        if profile is None:
            return Subject(id=user_data["id"], email=user_data.get("email"), is_admin=False)
        return profile.to_subject()

    def ensure_profile(self, user_id: str, email: Optional[str], display_name: Optional[str] = None) -> ProfileResponse:
        """Create the profile for a new auth user; keeps a single row per user_id"""
        try:
            result = self.supabase.table("user_profiles").upsert({
                "user_id": user_id,
                "email": email,
                "display_name": sanitize(display_name),
            }, on_conflict="user_id").execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create profile")

            return ProfileResponse(**_normalize(result.data[0]))
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating profile for user {user_id}: {e}")
            raise HTTPException(status_code=500, detail=generic_error_message(e))

    def list_profiles(self, limit: int = 100, offset: int = 0) -> List[ProfileResponse]:
        try:
            result = self.supabase.table("user_profiles")\
                .select("*")\
                .order("display_name")\
                .limit(limit)\
                .offset(offset)\
                .execute()
            return [ProfileResponse(**_normalize(p)) for p in result.data]
        except Exception as e:
            logger.error(f"Error listing profiles: {e}")
            raise HTTPException(status_code=500, detail=generic_error_message(e))

    def update_profile(self, user_id: str, profile_data: ProfileUpdate, allow_admin_flag: bool = False) -> ProfileResponse:
        """Update profile. is_admin is only written when allow_admin_flag is set (caller is admin)."""
        try:
            update_data = {"updated_at": datetime.now(timezone.utc).isoformat()}
            if profile_data.display_name is not None:
                update_data["display_name"] = sanitize(profile_data.display_name)
            if profile_data.email is not None:
                update_data["email"] = str(profile_data.email)
            if profile_data.is_admin is not None:
                if allow_admin_flag:
                    update_data["is_admin"] = profile_data.is_admin
                else:
                    current = self.get_profile(user_id)
                    if current is None:
                        raise HTTPException(status_code=404, detail="Profile not found")
                    # Echoing the current value back (full-form saves) is not a change.
                    if current.is_admin != profile_data.is_admin:
                        raise HTTPException(status_code=403, detail="Only administrators can change admin status")

            result = self.supabase.table("user_profiles")\
                .update(update_data)\
                .eq("user_id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")

            if "is_admin" in update_data:
                logger.info(f"Admin status of user {user_id} set to {update_data['is_admin']}")
            return ProfileResponse(**_normalize(result.data[0]))
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error updating profile {user_id}: {e}")
            raise HTTPException(status_code=500, detail=generic_error_message(e))
