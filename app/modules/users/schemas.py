from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime


class AuthUserResponse(BaseModel):
    """A Supabase Auth user as seen by administrators."""
    id: str
    email: Optional[str] = None
    created_at: Optional[datetime] = None
    last_sign_in_at: Optional[datetime] = None
    email_confirmed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AuthUserEmailUpdate(BaseModel):
    email: EmailStr
