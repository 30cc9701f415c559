"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Bearer token extraction
- Optional administrator identity (absent for anonymous callers)
- Client information for submissions
"""

from typing import Annotated

from fastapi import Depends, Request
from jose import JWTError

from lawcomments.auth.permissions import is_admin
from lawcomments.auth.schemas import AdminIdentity
from lawcomments.auth.security import decode_access_token
from lawcomments.config.settings import Settings, get_settings
from lawcomments.core.context import set_moderator_id
from lawcomments.core.logging import get_logger
from lawcomments.core.network import resolve_client_address


logger = get_logger(__name__)


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header.

    Returns:
        Token string or None if not present
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_client_info(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> tuple[str | None, str | None]:
    """Extract client information for a submission.

    Returns:
        Tuple of (user_agent, ip_address)
    """
    user_agent = request.headers.get("user-agent")
    ip_address = resolve_client_address(request, settings.trusted_hosts)
    return user_agent, ip_address


async def get_current_admin_optional(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> AdminIdentity | None:
    """Get the calling administrator, or None.

    Missing, invalid or expired tokens and non-admin roles all yield None;
    the moderation service refuses to act without an identity.
    """
    if not token:
        return None

    try:
        payload = decode_access_token(token)
    except JWTError as e:
        logger.info("admin_token_rejected", reason=str(e))
        return None

    if not is_admin(payload.get("role")) or not payload.get("sub"):
        return None

    admin = AdminIdentity(
        id=str(payload["sub"]),
        email=payload.get("email"),
        name=payload.get("name"),
    )
    set_moderator_id(admin.id)
    return admin


# Type aliases for dependency injection
ClientInfo = Annotated[tuple[str | None, str | None], Depends(get_client_info)]
OptionalAdmin = Annotated[AdminIdentity | None, Depends(get_current_admin_optional)]
