"""
Session-level authentication stand-in.

Provides the role and permission checks the server uses to gate tools.
The login accepts any well-formed email with a non-empty password; it is
not a security boundary.
"""

import logging
from datetime import datetime
from typing import Optional, Union

from spendsight_mcp.models.user import ROLE_PERMISSIONS, Permission, User, UserRole
from spendsight_mcp.utils.ids import IdSupplier, new_id
from spendsight_mcp.utils.validators import validate_email

logger = logging.getLogger(__name__)


def make_user(
    email: str,
    role: UserRole = UserRole.OWNER,
    id_supplier: IdSupplier = new_id,
) -> User:
    """Build a user carrying the default permissions of ``role``."""
    now = datetime.now()
    return User(
        id=id_supplier("usr"),
        email=email,
        name=email.split("@")[0],
        role=role,
        permissions=ROLE_PERMISSIONS[role],
        last_login_at=now,
        created_at=now,
        updated_at=now,
    )


class AuthSession:
    """The user of the current session and their capabilities."""

    def __init__(self, user: Optional[User] = None, id_supplier: IdSupplier = new_id):
        self.user = user
        self._new_id = id_supplier

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def has_role(self, role: Union[UserRole, str]) -> bool:
        if self.user is None:
            return False
        try:
            return self.user.role == UserRole(role)
        except ValueError:
            return False

    def has_permission(self, permission: Union[Permission, str]) -> bool:
        if self.user is None:
            return False
        try:
            return Permission(permission) in self.user.permissions
        except ValueError:
            return False

    async def login(self, email: str, password: str) -> User:
        """
        Sign in as an owner.

        Raises:
            ValueError: If the email is malformed or the password is empty
        """
        if not validate_email(email):
            raise ValueError(f"Invalid email address: {email}")
        if not password:
            raise ValueError("Password is required")

        self.user = make_user(email, UserRole.OWNER, self._new_id)
        logger.info("User %s logged in", email)
        return self.user

    def logout(self) -> None:
        if self.user is not None:
            logger.info("User %s logged out", self.user.email)
        self.user = None
