# Multi-Source MCP Server
# File: auth.py
# Version: v1

"""Bearer-token holders for the upstream APIs.

Tokens are obtained (and refreshed) outside this server and handed in via
configuration. The holders only check presence and build request headers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from .errors import AuthError


@dataclass
class BearerTokenAuth:
    """Static bearer token for one upstream service."""

    service: str
    access_token: Optional[str] = None
    # Env variable operators should set; only used in error messages.
    env_var: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.access_token)

    async def get_access_token(self) -> str:
        """Return the configured token or raise :class:`AuthError`."""
        if not self.access_token:
            hint = f" Set {self.env_var}." if self.env_var else ""
            raise AuthError(f"No {self.service} access token is configured.{hint}")
        return self.access_token

    async def headers(self, accept: str = "application/json") -> Dict[str, str]:
        token = await self.get_access_token()
        return {
            "Authorization": f"Bearer {token}",
            "Accept": accept,
        }
