"""
Request identity.

The upstream session provider forwards the signed-in user as headers.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header

from exceptions import UnauthorizedError

SALES_MANAGER_ROLE = "sales_manager"


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: Optional[str] = None


def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> CurrentUser:
    """Identity from X-User-Id / X-User-Role; 401 when not signed in."""
    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedError()
    return CurrentUser(id=x_user_id.strip(), role=(x_user_role or "").strip() or None)


def require_sales_manager(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Only sales managers may import or edit entries."""
    if user.role != SALES_MANAGER_ROLE:
        raise UnauthorizedError()
    return user
