"""
User, role and permission models.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    VIEWER = "viewer"


class Permission(str, Enum):
    VIEW_TRANSACTIONS = "view_transactions"
    EDIT_TRANSACTIONS = "edit_transactions"
    DELETE_TRANSACTIONS = "delete_transactions"
    MANAGE_CATEGORIES = "manage_categories"
    MANAGE_CARDS = "manage_cards"
    MANAGE_USERS = "manage_users"
    VIEW_ANALYTICS = "view_analytics"
    EXPORT_DATA = "export_data"
    MANAGE_SETTINGS = "manage_settings"
    VIEW_AUDIT_LOGS = "view_audit_logs"


ROLE_PERMISSIONS: Dict[UserRole, List[Permission]] = {
    UserRole.OWNER: list(Permission),
    UserRole.ADMIN: [p for p in Permission if p is not Permission.MANAGE_USERS],
    UserRole.VIEWER: [
        Permission.VIEW_TRANSACTIONS,
        Permission.VIEW_ANALYTICS,
        Permission.EXPORT_DATA,
    ],
}


class User(BaseModel):
    """An authenticated SpendSight user."""

    model_config = {"frozen": True, "populate_by_name": True}

    id: str
    email: str
    name: str
    role: UserRole
    permissions: List[Permission] = Field(default_factory=list)
    is_active: bool = True
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
