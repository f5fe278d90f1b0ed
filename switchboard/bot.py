"""Lifecycle controller for switchboard.

Owns the gateway client, the handler Registry, the BotContext and the
router, and drives startup in a fixed order: construct client -> load
handlers -> schedule command sync -> attach router -> connect.

Key classes:
    SwitchboardBot: Main bot class -- owns all process-wide state.
"""

import asyncio
from typing import List, Optional

import structlog

from .config import Config, get_config
from .context import BotContext
from .gateway import Gateway, WebSocketGateway, log_task_exception
from .loader import HandlerLoader
from .registry import LoadWarning, Registry
from .rest import RestClient
from .router import InteractionRouter
from .sync import CommandSync, RegistrationResult, RegistrationScope

logger = structlog.get_logger("switchboard.bot")


class SwitchboardBot:
    """Interaction dispatcher bot.

    Subsystems are created in two phases: __init__ builds the clients
    (no I/O), start() loads handlers, kicks off registration and
    connects. Registration runs in the background and never blocks
    readiness; its typed result is kept in ``sync_result``.

    Args:
        config: Config instance. Defaults to the global config.
        gateway: Event source. Defaults to a WebSocketGateway on
            ``config.gateway_url``.
        rest: REST client used for command registration.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        gateway: Optional[Gateway] = None,
        rest: Optional[RestClient] = None,
    ):
        self.config = config or get_config()
        self.rest = rest or RestClient(
            token=self.config.auth_token,
            base_url=self.config.api_base_url,
            timeout=self.config.request_timeout,
        )
        self.gateway = gateway or WebSocketGateway(
            url=self.config.gateway_url,
            token=self.config.auth_token,
        )
        self.loader = HandlerLoader(disabled=self.config.disabled_handlers)

        self.registry: Optional[Registry] = None
        self.load_warnings: List[LoadWarning] = []
        self.context: Optional[BotContext] = None
        self.router: Optional[InteractionRouter] = None
        self.sync_result: Optional[RegistrationResult] = None
        self._sync_task: Optional[asyncio.Task] = None
        self.running = False

    @property
    def scope(self) -> RegistrationScope:
        return RegistrationScope(
            application_id=self.config.application_id,
            guild_id=self.config.restricted_scope_id,
        )

    async def start(self):
        """Load handlers, schedule registration, attach the router and connect.

        Raises:
            HandlerConflictError: Duplicate handler identity in strict mode.
            GatewayAuthError: The gateway rejected the credentials.
            GatewayError: The initial connection failed.
        """
        self.registry, self.load_warnings = self.loader.load_registry(
            self.config.commands_dir,
            self.config.components_dir,
            strict=self.config.strict_duplicates,
        )
        if self.load_warnings:
            logger.warning("handlers_loaded_with_warnings", count=len(self.load_warnings))

        self.context = BotContext(
            config=self.config,
            registry=self.registry,
            rest=self.rest,
            gateway=self.gateway,
        )

        self._sync_task = asyncio.create_task(self.sync_commands())
        self._sync_task.add_done_callback(log_task_exception)

        self.router = InteractionRouter(self.registry, self.context)
        self.gateway.subscribe(self.router.dispatch)
        self.gateway.on_ready(self._on_ready)

        self.running = True
        await self.gateway.connect()
        logger.info(
            "bot_started",
            commands=len(self.registry.commands),
            components=len(self.registry.components),
        )

    async def sync_commands(self) -> RegistrationResult:
        """Register the loaded command set once. Never raises."""
        scope = self.scope
        result = await CommandSync(self.rest).sync(self.registry.command_payloads(), scope)
        self.sync_result = result
        if not result.ok:
            logger.warning(
                "commands_unregistered",
                scope=scope.describe(),
                hint="Commands stay unregistered until the next successful start",
            )
        return result

    async def _on_ready(self, user: dict) -> None:
        self.context.mark_ready(user)
        logger.info("bot_ready", user=user.get("username"), user_id=user.get("id"))
        try:
            await self.gateway.set_presence(self.config.presence_text)
        except Exception as e:
            logger.warning("presence_update_failed", error=str(e))

    async def stop(self):
        """Drain in-flight handlers and release connections."""
        if not self.running:
            return
        self.running = False
        await self.gateway.drain(self.config.shutdown_grace_period)
        if self._sync_task and not self._sync_task.done():
            self._sync_task.cancel()
            await asyncio.gather(self._sync_task, return_exceptions=True)
        await self.gateway.close()
        await self.rest.close()
        logger.info("bot_stopped")

    async def run(self):
        """Main run loop: start, receive events until the gateway stops, stop."""
        try:
            await self.start()
            await self.gateway.run()
        finally:
            await self.stop()
