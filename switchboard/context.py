"""Process-scoped context passed to the router and every handler.

Handlers receive a BotContext as the second argument of ``execute``.
They may read from it (config, registry, bot identity) but must not
mutate the registry.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .config import Config
    from .gateway import Gateway
    from .registry import Registry
    from .rest import RestClient


@dataclass
class BotContext:
    """Dependency container shared by all handlers.

    Deferred fields (set once the gateway is ready) use underscore
    storage with property getters that raise RuntimeError if accessed
    before the bot is ready.
    """

    config: "Config"
    registry: "Registry"
    rest: "RestClient"
    gateway: "Gateway"
    ready: asyncio.Event = field(default_factory=asyncio.Event)
    _user: Optional[Dict[str, Any]] = field(default=None, repr=False)

    @property
    def user(self) -> Dict[str, Any]:
        """The bot's own user object, as reported by the gateway."""
        if self._user is None:
            raise RuntimeError("Bot not ready: user not available")
        return self._user

    @property
    def is_ready(self) -> bool:
        return self.ready.is_set()

    def mark_ready(self, user: Optional[Dict[str, Any]]) -> None:
        self._user = dict(user or {})
        self.ready.set()
