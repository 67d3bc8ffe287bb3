"""
Request dependencies: identity, tenancy enforcement and tenant handles

Every tenant-scoped route depends on ``require_household_role``. It reads the
household id from the path only, checks the caller's role in the directory,
and resolves the tenant store only after the check passes.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Path, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from hearth.core.exceptions import Forbidden
from hearth.core.security import InvalidToken, decode_access_token
from hearth.core.tenant_registry import TenantHandle
from hearth.models import HouseholdRole
from hearth.models.base import MAX_ROW_ID
from hearth.services.audit import RequestContext

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class TenantContext:
    """
    Trusted scope of one tenant request
    """

    household_id: int
    user_id: int
    role: HouseholdRole
    handle: TenantHandle
    request: RequestContext


def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> int:
    """User id from the bearer token"""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return decode_access_token(credentials.credentials, request.app.state.settings)
    except InvalidToken as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_household_role(required: HouseholdRole) -> Callable[..., TenantContext]:
    """
    Build a dependency that admits callers holding at least ``required``

    Raises Forbidden for no role, an insufficient role, or a household that
    does not exist; the three cases are indistinguishable to the caller.
    """

    def dependency(
        request: Request,
        household_id: int = Path(..., ge=1, le=MAX_ROW_ID),
        user_id: int = Depends(get_current_user_id),
    ) -> TenantContext:
        directory = request.app.state.directory
        role = directory.get_role(user_id, household_id)
        if role is None or not role.allows(required):
            logger.warning(
                "Forbidden: user %s (role %s) on household %s requires %s",
                user_id, role.value if role else None, household_id, required.value,
            )
            raise Forbidden()

        handle = request.app.state.registry.resolve(household_id)
        return TenantContext(
            household_id=household_id,
            user_id=user_id,
            role=role,
            handle=handle,
            request=RequestContext.from_request(request),
        )

    return dependency


require_viewer = require_household_role(HouseholdRole.VIEWER)
require_member = require_household_role(HouseholdRole.MEMBER)
require_admin = require_household_role(HouseholdRole.ADMIN)
