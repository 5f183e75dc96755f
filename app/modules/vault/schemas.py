from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class SecretCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1)
    login: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None
    group_name: Optional[str] = None
    client_id: Optional[str] = None  # "none" or empty means no client
    company_id: Optional[str] = None  # "none" or empty means no company


class SecretUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    password: Optional[str] = Field(default=None, min_length=1)
    login: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None
    group_name: Optional[str] = None
    client_id: Optional[str] = None
    company_id: Optional[str] = None


class SecretResponse(BaseModel):
    id: str
    name: str
    password: str  # decrypted for the acting user, or the stored value when it cannot be opened
    login: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None
    group_name: Optional[str] = None
    client_id: Optional[str] = None
    company_id: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class VaultGroupResponse(BaseModel):
    id: str
    name: str

    class Config:
        from_attributes = True
