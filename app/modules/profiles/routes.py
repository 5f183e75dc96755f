from fastapi import APIRouter, Depends, HTTPException, status
from app.core.dependencies import get_current_subject, get_profile_service, require_admin
from app.modules.profiles.schemas import ProfileResponse, ProfileUpdate, Subject
from app.modules.profiles.service import ProfileService
from typing import List

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("", response_model=List[ProfileResponse])
async def list_profiles(
    limit: int = 100,
    offset: int = 0,
    admin: Subject = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service)
):
    """List all profiles (admin only)"""
    return service.list_profiles(limit=limit, offset=offset)


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    subject: Subject = Depends(get_current_subject),
    service: ProfileService = Depends(get_profile_service)
):
    """Get the current user's profile"""
    profile = service.get_profile(subject.id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile(
    user_id: str,
    subject: Subject = Depends(get_current_subject),
    service: ProfileService = Depends(get_profile_service)
):
    """Get a profile (self or admin)"""
    if not subject.is_admin and subject.id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Profile not accessible")
    profile = service.get_profile(user_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile


@router.put("/{user_id}", response_model=ProfileResponse)
async def update_profile(
    user_id: str,
    profile_data: ProfileUpdate,
    subject: Subject = Depends(get_current_subject),
    service: ProfileService = Depends(get_profile_service)
):
    """Update a profile (self or admin). Only admins may change is_admin."""
    if not subject.is_admin and subject.id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Profile not accessible")
    return service.update_profile(user_id, profile_data, allow_admin_flag=subject.is_admin)
