"""One-shot bulk registration of the command set.

Sync never raises: every failure becomes a RegistrationResult with
outcome FAILED, so a registration problem cannot keep an otherwise
working bot offline.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence

import structlog

logger = structlog.get_logger("switchboard.sync")


class RegistrationTransport(Protocol):
    """Anything that can bulk-replace a scope's commands (see RestClient)."""

    async def bulk_overwrite_commands(
        self,
        application_id: str,
        commands: List[Dict[str, Any]],
        guild_id: Optional[str] = None,
    ) -> Any: ...


@dataclass(frozen=True)
class RegistrationScope:
    """Where commands are registered: one guild, or globally."""
    application_id: str
    guild_id: Optional[str] = None

    @property
    def is_global(self) -> bool:
        return not self.guild_id

    def describe(self) -> str:
        return "global" if self.is_global else f"guild:{self.guild_id}"


class RegistrationOutcome(str, Enum):
    REGISTERED = "registered"
    SKIPPED_EMPTY = "skipped_empty"
    FAILED = "failed"


@dataclass(frozen=True)
class RegistrationResult:
    """Typed outcome of a sync call.

    Attributes:
        outcome: What happened.
        scope: The scope that was targeted.
        count: Number of commands in the batch.
        error: The exception, when outcome is FAILED.
    """
    outcome: RegistrationOutcome
    scope: RegistrationScope
    count: int = 0
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        """True unless the remote call failed. An empty batch counts as success."""
        return self.outcome != RegistrationOutcome.FAILED


class CommandSync:
    """Registers a command batch through a transport, exactly once per call."""

    def __init__(self, transport: RegistrationTransport):
        self._transport = transport

    async def sync(
        self,
        payloads: Sequence[Dict[str, Any]],
        scope: RegistrationScope,
    ) -> RegistrationResult:
        """Bulk-replace the scope's commands with ``payloads``.

        An empty batch is skipped without any network call.
        """
        batch = list(payloads)
        if not batch:
            logger.info("command_sync_skipped", reason="no_commands", scope=scope.describe())
            return RegistrationResult(RegistrationOutcome.SKIPPED_EMPTY, scope)

        logger.info(
            "command_sync_started",
            count=len(batch),
            scope=scope.describe(),
            note="global registration may take several minutes to propagate"
            if scope.is_global else None,
        )
        try:
            await self._transport.bulk_overwrite_commands(
                scope.application_id, batch, guild_id=scope.guild_id
            )
        except Exception as e:
            logger.error(
                "command_sync_failed",
                scope=scope.describe(),
                count=len(batch),
                error=str(e),
                error_type=type(e).__name__,
            )
            return RegistrationResult(
                RegistrationOutcome.FAILED, scope, count=len(batch), error=e
            )

        logger.info("command_sync_complete", count=len(batch), scope=scope.describe())
        return RegistrationResult(RegistrationOutcome.REGISTERED, scope, count=len(batch))
