"""Inbound interaction events and their reply capability.

An Interaction is created by the gateway for every user action,
consumed once by the router and then discarded. It carries the
routing data (command name or custom id) and a reply capability that
enforces acknowledge-once semantics through its ``replied`` and
``deferred`` flags.
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .exceptions import InteractionAlreadyAcknowledged

# Async callback (interaction, response) -> None supplied by the gateway
Responder = Callable[["Interaction", Dict[str, Any]], Awaitable[None]]


class InteractionKind(str, Enum):
    """Classes of inbound interaction the router understands."""
    CHAT_INPUT = "chat_input"
    BUTTON = "button"
    SELECT_MENU = "select_menu"
    AUTOCOMPLETE = "autocomplete"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "InteractionKind":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class ResponseType(str, Enum):
    """Kinds of response sent back through the responder."""
    REPLY = "reply"
    DEFER = "defer"
    FOLLOW_UP = "follow_up"
    AUTOCOMPLETE = "autocomplete"


class Interaction:
    """One inbound user action plus its reply capability.

    Args:
        id: Interaction identifier assigned by the platform.
        kind: Classification used by the router.
        respond: Async callback that delivers a response payload.
        command_name: Slash command name (chat input / autocomplete).
        custom_id: Routing token (button / select menu).
        token: Platform continuation token for replies, if any.
        user_id: Id of the requesting user.
        channel_id: Channel the interaction came from.
        guild_id: Guild the interaction came from (None in DMs).
        options: Command options as ``{name: value}``.
        values: Selected values for select menus.
        focused: Name of the focused option for autocomplete.
    """

    def __init__(
        self,
        id: str,
        kind: InteractionKind,
        respond: Responder,
        *,
        command_name: Optional[str] = None,
        custom_id: Optional[str] = None,
        token: Optional[str] = None,
        user_id: Optional[str] = None,
        channel_id: Optional[str] = None,
        guild_id: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
        values: Optional[List[str]] = None,
        focused: Optional[str] = None,
    ):
        self.id = id
        self.kind = kind
        self.command_name = command_name
        self.custom_id = custom_id
        self.token = token
        self.user_id = user_id
        self.channel_id = channel_id
        self.guild_id = guild_id
        self.options = dict(options or {})
        self.values = list(values or [])
        self.focused = focused
        self._respond = respond
        self.replied = False
        self.deferred = False
        self.ephemeral = False

    def __repr__(self) -> str:
        return (
            f"Interaction(id={self.id!r}, kind={self.kind.value!r}, "
            f"command_name={self.command_name!r}, custom_id={self.custom_id!r})"
        )

    @classmethod
    def from_payload(cls, data: Dict[str, Any], respond: Responder) -> "Interaction":
        """Build an Interaction from a gateway ``interaction`` frame body."""
        options = {}
        focused = None
        for opt in data.get("options") or []:
            if not isinstance(opt, dict) or "name" not in opt:
                continue
            options[opt["name"]] = opt.get("value")
            if opt.get("focused"):
                focused = opt["name"]
        return cls(
            id=str(data.get("id", "")),
            kind=InteractionKind.parse(data.get("kind")),
            respond=respond,
            command_name=data.get("command_name"),
            custom_id=data.get("custom_id"),
            token=data.get("token"),
            user_id=data.get("user_id"),
            channel_id=data.get("channel_id"),
            guild_id=data.get("guild_id"),
            options=options,
            values=data.get("values"),
            focused=focused,
        )

    @property
    def acknowledged(self) -> bool:
        """Whether a reply or deferral has already been sent."""
        return self.replied or self.deferred

    async def reply(self, content: str, *, ephemeral: bool = False, **extra: Any) -> None:
        """Send the initial response.

        Raises:
            InteractionAlreadyAcknowledged: If already replied or deferred.
        """
        if self.acknowledged:
            raise InteractionAlreadyAcknowledged(interaction_id=self.id)
        await self._respond(self, {
            "type": ResponseType.REPLY.value,
            "content": content,
            "ephemeral": ephemeral,
            **extra,
        })
        self.replied = True
        self.ephemeral = ephemeral

    async def defer(self, *, ephemeral: bool = False) -> None:
        """Acknowledge now and reply later via follow_up().

        Raises:
            InteractionAlreadyAcknowledged: If already replied or deferred.
        """
        if self.acknowledged:
            raise InteractionAlreadyAcknowledged(interaction_id=self.id)
        await self._respond(self, {
            "type": ResponseType.DEFER.value,
            "ephemeral": ephemeral,
        })
        self.deferred = True
        self.ephemeral = ephemeral

    async def follow_up(self, content: str, *, ephemeral: bool = False, **extra: Any) -> None:
        """Send an additional message after reply() or defer()."""
        await self._respond(self, {
            "type": ResponseType.FOLLOW_UP.value,
            "content": content,
            "ephemeral": ephemeral,
            **extra,
        })
        if self.deferred:
            self.replied = True

    async def respond_autocomplete(self, choices: List[Dict[str, Any]]) -> None:
        """Send autocomplete suggestions (at most 25 are kept)."""
        if self.acknowledged:
            raise InteractionAlreadyAcknowledged(interaction_id=self.id)
        await self._respond(self, {
            "type": ResponseType.AUTOCOMPLETE.value,
            "choices": list(choices)[:25],
        })
        self.replied = True
