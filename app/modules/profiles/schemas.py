from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime


class Subject(BaseModel):
    """The acting user as seen by the permission engine."""
    id: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    is_admin: bool = False


class ProfileUpdate(BaseModel):
    display_name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[EmailStr] = None
    is_admin: Optional[bool] = None  # applied only when the caller is admin


class ProfileResponse(BaseModel):
    id: str
    user_id: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    is_admin: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    def to_subject(self) -> Subject:
        return Subject(
            id=self.user_id,
            display_name=self.display_name,
            email=self.email,
            is_admin=self.is_admin,
        )
