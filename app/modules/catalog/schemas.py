from pydantic import BaseModel
from typing import Optional

from app.config.permissions_config import ModuleKey


class PermissionModuleResponse(BaseModel):
    module_key: ModuleKey
    module_name: str
    description: Optional[str] = None
    display_order: int = 0
    is_active: bool = True
