"""Handler contract types for switchboard.

A command handler file exposes module-level ``schema`` and ``execute``
(and optionally ``autocomplete``). A component handler file exposes
``routing_key`` and ``execute``. The loader turns each valid file into a
CommandUnit or ComponentUnit defined here.

Key classes:
    CommandOption, CommandSchema: Pydantic models of the registration
        payload sent to the remote API.
    CommandUnit, ComponentUnit: Validated, loaded handler units.
    HandlerKind: Which contract a handler directory follows.
"""

import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# execute(interaction, context) or execute(interaction); sync or async
HandlerCallable = Callable[..., Union[Awaitable[Any], Any]]

COMMAND_NAME_PATTERN = r"^[-_a-z0-9]{1,32}$"


class HandlerKind(str, Enum):
    """Which handler contract a source directory follows."""
    COMMAND = "command"
    COMPONENT = "component"


class OptionType(int, Enum):
    """Command option value types."""
    SUB_COMMAND = 1
    SUB_COMMAND_GROUP = 2
    STRING = 3
    INTEGER = 4
    BOOLEAN = 5
    USER = 6
    CHANNEL = 7
    ROLE = 8
    MENTIONABLE = 9
    NUMBER = 10
    ATTACHMENT = 11


class OptionChoice(BaseModel):
    """A fixed choice offered for a string/integer/number option."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1, max_length=100)
    value: Union[str, int, float]


class CommandOption(BaseModel):
    """One option (argument) of a slash command."""

    # Unmodelled fields (localizations, length limits, channel types) pass through
    model_config = ConfigDict(extra="allow")

    type: OptionType
    name: str = Field(..., pattern=COMMAND_NAME_PATTERN)
    description: str = Field(..., min_length=1, max_length=100)
    required: Optional[bool] = None
    choices: Optional[List[OptionChoice]] = None
    options: Optional[List["CommandOption"]] = None
    autocomplete: Optional[bool] = None
    min_value: Optional[Union[int, float]] = None
    max_value: Optional[Union[int, float]] = None


class CommandSchema(BaseModel):
    """Declarative description of a slash command, as registered remotely."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(..., pattern=COMMAND_NAME_PATTERN)
    description: str = Field(..., min_length=1, max_length=100)
    type: int = 1
    options: List[CommandOption] = Field(default_factory=list)
    default_member_permissions: Optional[str] = None
    dm_permission: Optional[bool] = None
    nsfw: Optional[bool] = None

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the JSON registration format."""
        return self.model_dump(mode="json", exclude_none=True)


CommandOption.model_rebuild()


def accepts_context(fn: HandlerCallable) -> Optional[bool]:
    """Check how a handler callable can be invoked.

    Returns:
        True if it accepts ``(interaction, context)``, False if it only
        accepts ``(interaction)``, None if it accepts neither.
    """
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        # Builtins without signatures: assume the full contract
        return True
    for args in ((None, None), (None,)):
        try:
            sig.bind(*args)
        except TypeError:
            continue
        return len(args) == 2
    return None


async def call_handler(fn: HandlerCallable, *args) -> Any:
    """Call a sync or async handler and await the result if needed."""
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


@dataclass(frozen=True)
class CommandUnit:
    """A validated slash-command handler.

    Attributes:
        schema: Registration schema; ``schema.name`` is the identity.
        execute: Handler invoked for chat-input interactions.
        autocomplete: Optional handler for autocomplete requests.
        source: File the unit was loaded from.
        pass_context: Whether execute takes the BotContext argument.
        autocomplete_pass_context: Same, for autocomplete.
    """
    schema: CommandSchema
    execute: HandlerCallable
    autocomplete: Optional[HandlerCallable] = None
    source: str = ""
    pass_context: bool = True
    autocomplete_pass_context: bool = False

    @property
    def name(self) -> str:
        return self.schema.name

    async def run(self, interaction, context) -> Any:
        if self.pass_context:
            return await call_handler(self.execute, interaction, context)
        return await call_handler(self.execute, interaction)

    async def run_autocomplete(self, interaction, context=None) -> Any:
        if self.autocomplete is None:
            return None
        if self.autocomplete_pass_context:
            return await call_handler(self.autocomplete, interaction, context)
        return await call_handler(self.autocomplete, interaction)


@dataclass(frozen=True)
class ComponentUnit:
    """A validated button / select-menu handler.

    Attributes:
        routing_key: Exact custom id, or the prefix before the first ``:``.
        execute: Handler invoked for matching component interactions.
        source: File the unit was loaded from.
        pass_context: Whether execute takes the BotContext argument.
    """
    routing_key: str
    execute: HandlerCallable
    source: str = ""
    pass_context: bool = True

    async def run(self, interaction, context) -> Any:
        if self.pass_context:
            return await call_handler(self.execute, interaction, context)
        return await call_handler(self.execute, interaction)
