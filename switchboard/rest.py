"""HTTP client for the remote application API.

Only the call the dispatcher needs: bulk-replacing the command set for
a registration scope.
"""

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from .exceptions import ErrorCategory, RegistrationError

logger = structlog.get_logger("switchboard.sync")


class RestClient:
    """Thin aiohttp wrapper around the REST API.

    The session is created lazily on first use and must be released
    with close().

    Args:
        token: Bot credential sent as ``Authorization: Bot <token>``.
        base_url: API root, e.g. ``https://discord.com/api/v10``.
        timeout: Total per-request timeout in seconds.
    """

    def __init__(self, token: str, base_url: str, timeout: float = 30.0):
        self._token = token
        self.base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self.session: Optional[aiohttp.ClientSession] = None

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bot {self._token}",
            "Content-Type": "application/json",
        }

    def _session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(headers=self.headers, timeout=self._timeout)
        return self.session

    async def close(self) -> None:
        if self.session and not self.session.closed:
            await self.session.close()
        self.session = None

    @staticmethod
    def commands_route(application_id: str, guild_id: Optional[str] = None) -> str:
        """Path of the command collection for a scope."""
        if guild_id:
            return f"/applications/{application_id}/guilds/{guild_id}/commands"
        return f"/applications/{application_id}/commands"

    async def bulk_overwrite_commands(
        self,
        application_id: str,
        commands: List[Dict[str, Any]],
        guild_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Replace every command in the scope with ``commands``.

        Returns:
            The command objects echoed back by the API.

        Raises:
            RegistrationError: On a non-2xx response or transport failure.
                 429 and 5xx responses are classified TRANSIENT.
        """
        url = self.base_url + self.commands_route(application_id, guild_id)
        logger.debug("command_registration_request", url=url, count=len(commands))
        try:
            async with self._session().put(url, json=commands) as resp:
                if 200 <= resp.status < 300:
                    return await resp.json()
                body = await resp.text()
                transient = resp.status == 429 or resp.status >= 500
                raise RegistrationError(
                    f"Command registration rejected with HTTP {resp.status}",
                    status=resp.status,
                    category=ErrorCategory.TRANSIENT if transient else ErrorCategory.PERMANENT,
                    body=body[:200],
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RegistrationError(
                f"Command registration request failed: {type(e).__name__}: {e}",
            ) from e
