from pydantic import BaseModel
from typing import Optional


class ProjectRef(BaseModel):
    id: str
    owner_account_id: str


class ProfileRef(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    company: Optional[str] = None
