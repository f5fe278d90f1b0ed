"""Per-event routing of inbound interactions to handler units.

Each interaction goes Received -> Classified -> Resolved -> Invoked ->
Completed | Failed. Nothing raised by a handler escapes dispatch(): the
error is logged and, if the interaction is still unanswered, one
generic ephemeral error reply is attempted.

Key classes:
    InteractionRouter: Classifies, resolves and invokes handlers.
    DispatchOutcome: Terminal state of one dispatch, for logs and tests.
"""

import asyncio
from enum import Enum

import structlog

from .context import BotContext
from .events import Interaction, InteractionKind
from .registry import Registry

logger = structlog.get_logger("switchboard.router")

COMMAND_NOT_FOUND = "Command not found."
COMPONENT_NOT_FOUND = "Component handler not found."
GENERIC_ERROR = "An error occurred while processing your interaction."


class DispatchOutcome(str, Enum):
    COMPLETED = "completed"
    NOT_FOUND = "not_found"
    IGNORED = "ignored"
    FAILED = "failed"


class InteractionRouter:
    """Routes interactions using a read-only Registry.

    Args:
        registry: Command and component lookup tables.
        context: Passed as the second argument to every execute().
    """

    def __init__(self, registry: Registry, context: BotContext):
        self.registry = registry
        self.context = context

    async def dispatch(self, interaction: Interaction) -> DispatchOutcome:
        """Handle one interaction. Never raises (except on cancellation)."""
        log = logger.bind(
            interaction_id=interaction.id,
            kind=interaction.kind.value,
        )
        try:
            if interaction.kind == InteractionKind.CHAT_INPUT:
                return await self._dispatch_command(interaction, log)
            if interaction.kind in (InteractionKind.BUTTON, InteractionKind.SELECT_MENU):
                return await self._dispatch_component(interaction, log)
            if interaction.kind == InteractionKind.AUTOCOMPLETE:
                return await self._dispatch_autocomplete(interaction, log)
            log.debug("interaction_ignored")
            return DispatchOutcome.IGNORED
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.error(
                "interaction_handler_error",
                command=interaction.command_name,
                custom_id=interaction.custom_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            await self._reply_error(interaction, log)
            return DispatchOutcome.FAILED

    async def _dispatch_command(self, interaction: Interaction, log) -> DispatchOutcome:
        unit = self.registry.get_command(interaction.command_name)
        if unit is None:
            log.info("command_not_found", command=interaction.command_name)
            await interaction.reply(COMMAND_NOT_FOUND, ephemeral=True)
            return DispatchOutcome.NOT_FOUND
        log.debug("command_invoked", command=unit.name)
        await unit.run(interaction, self.context)
        return DispatchOutcome.COMPLETED

    async def _dispatch_component(self, interaction: Interaction, log) -> DispatchOutcome:
        unit = self.registry.resolve_component(interaction.custom_id)
        if unit is None:
            log.info("component_not_found", custom_id=interaction.custom_id)
            await interaction.reply(COMPONENT_NOT_FOUND, ephemeral=True)
            return DispatchOutcome.NOT_FOUND
        log.debug(
            "component_invoked",
            custom_id=interaction.custom_id,
            routing_key=unit.routing_key,
        )
        await unit.run(interaction, self.context)
        return DispatchOutcome.COMPLETED

    async def _dispatch_autocomplete(self, interaction: Interaction, log) -> DispatchOutcome:
        unit = self.registry.get_command(interaction.command_name)
        if unit is None or unit.autocomplete is None:
            log.debug("autocomplete_unhandled", command=interaction.command_name)
            return DispatchOutcome.IGNORED
        await unit.run_autocomplete(interaction, self.context)
        return DispatchOutcome.COMPLETED

    @staticmethod
    async def _reply_error(interaction: Interaction, log) -> None:
        """Best-effort generic reply; a second failure is swallowed."""
        if interaction.replied or interaction.deferred:
            return
        try:
            await interaction.reply(GENERIC_ERROR, ephemeral=True)
        except Exception as e:
            # Typically an expired interaction
            log.debug("error_reply_failed", error=str(e), error_type=type(e).__name__)
