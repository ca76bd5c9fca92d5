"""
Request dependencies shared by the endpoints.
"""

import ipaddress
import logging
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from shortener.services.url_service import URLShorteningService

logger = logging.getLogger(__name__)


def get_url_service(request: Request) -> URLShorteningService:
    """Return the service built at application startup."""
    return request.app.state.url_service


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """
    Resolve the caller identity.

    Authentication happens upstream; this service trusts the X-User-ID header.

    Raises:
        HTTPException 401: If the header is missing or blank
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-ID header"
        )
    return x_user_id.strip()


def require_trusted_subnet(
    request: Request,
    x_real_ip: Optional[str] = Header(default=None),
) -> None:
    """
    Allow the request only when X-Real-IP lies inside the trusted subnet.

    An unset trusted subnet denies everyone.

    Raises:
        HTTPException 403: If the caller is outside the trusted subnet
    """
    trusted_subnet = request.app.state.settings.trusted_subnet
    if not trusted_subnet or not x_real_ip:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    try:
        network = ipaddress.ip_network(trusted_subnet, strict=False)
    except ValueError:
        logger.error(f"Invalid trusted subnet configured: {trusted_subnet!r}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    try:
        address = ipaddress.ip_address(x_real_ip.strip())
    except ValueError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    if address not in network:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
