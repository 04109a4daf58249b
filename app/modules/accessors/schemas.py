from enum import Enum
from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime


class AccessorType(str, Enum):
    EMPLOYEE = "employee"
    OWNER = "owner"
    SUBCONTRACTOR = "subcontractor"
    OTHER = "other"


class AccessorCreate(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    company: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    accessor_type: AccessorType = AccessorType.OTHER
    registered_account_id: Optional[str] = None


class AccessorUpdate(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    company: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    accessor_type: Optional[AccessorType] = None


class AccessorResponse(BaseModel):
    id: str
    owner_account_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    company: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    accessor_type: AccessorType = AccessorType.OTHER
    registered_account_id: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LinkAccountRequest(BaseModel):
    account_id: str
