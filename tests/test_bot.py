"""Tests for the lifecycle controller: startup order, sync isolation, readiness."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from switchboard.bot import SwitchboardBot
from switchboard.events import Interaction, InteractionKind
from switchboard.exceptions import GatewayAuthError, HandlerConflictError, RegistrationError
from switchboard.gateway import Gateway
from switchboard.sync import RegistrationOutcome


class _FakeGateway(Gateway):
    """In-memory gateway recording calls instead of touching the network."""

    def __init__(self, calls, connect_error=None):
        super().__init__()
        self.calls = calls
        self.connect_error = connect_error
        self.presence = None
        self.responses = []
        self.closed = False

    async def connect(self):
        self.calls.append("connect")
        if self.connect_error:
            raise self.connect_error
        await self._fire_ready({"id": "1", "username": "switchboard"})

    async def run(self):
        pass

    async def respond(self, interaction, response):
        self.responses.append(response)

    async def set_presence(self, activity):
        self.presence = activity

    async def close(self):
        self.closed = True


def _config(tmp_path, guild_id=None, strict=False):
    config = MagicMock()
    config.commands_dir = tmp_path / "commands"
    config.components_dir = tmp_path / "components"
    config.disabled_handlers = []
    config.strict_duplicates = strict
    config.application_id = "app"
    config.restricted_scope_id = guild_id
    config.presence_text = "/help"
    config.shutdown_grace_period = 1
    return config


def _write_command(tmp_path, name, body="    await interaction.reply('ok')\n"):
    directory = tmp_path / "commands"
    directory.mkdir(exist_ok=True)
    (directory / f"{name}.py").write_text(
        f"schema = {{'name': '{name}', 'description': '{name}'}}\n"
        "async def execute(interaction, context):\n" + body
    )


def _rest(calls, error=None):
    rest = MagicMock()

    async def bulk_overwrite_commands(application_id, commands, guild_id=None):
        calls.append("sync")
        if error:
            raise error
        return commands

    rest.bulk_overwrite_commands = AsyncMock(side_effect=bulk_overwrite_commands)
    rest.close = AsyncMock()
    return rest


@pytest.mark.asyncio
async def test_startup_loads_then_syncs_then_connects(tmp_path):
    _write_command(tmp_path, "ping")
    calls = []
    gateway = _FakeGateway(calls)
    rest = _rest(calls)
    bot = SwitchboardBot(_config(tmp_path, guild_id="g1"), gateway=gateway, rest=rest)

    await bot.start()
    await bot._sync_task

    assert bot.registry.command_names == frozenset({"ping"})
    assert gateway._subscriber == bot.router.dispatch
    rest.bulk_overwrite_commands.assert_awaited_once_with(
        "app",
        [{"name": "ping", "description": "ping", "type": 1, "options": []}],
        guild_id="g1",
    )
    assert bot.sync_result.outcome == RegistrationOutcome.REGISTERED
    assert "connect" in calls
    await bot.stop()


@pytest.mark.asyncio
async def test_registration_failure_does_not_block_startup(tmp_path):
    _write_command(tmp_path, "ping")
    calls = []
    gateway = _FakeGateway(calls)
    rest = _rest(calls, error=RegistrationError("HTTP 503", status=503))
    bot = SwitchboardBot(_config(tmp_path), gateway=gateway, rest=rest)

    await bot.start()
    result = await bot._sync_task

    assert result.outcome == RegistrationOutcome.FAILED
    assert bot.context.is_ready
    await bot.stop()


@pytest.mark.asyncio
async def test_no_commands_skips_registration(tmp_path):
    calls = []
    rest = _rest(calls)
    bot = SwitchboardBot(_config(tmp_path), gateway=_FakeGateway(calls), rest=rest)

    await bot.start()
    result = await bot._sync_task

    assert result.outcome == RegistrationOutcome.SKIPPED_EMPTY
    rest.bulk_overwrite_commands.assert_not_called()
    await bot.stop()


@pytest.mark.asyncio
async def test_ready_sets_presence_and_user(tmp_path):
    calls = []
    gateway = _FakeGateway(calls)
    bot = SwitchboardBot(_config(tmp_path), gateway=gateway, rest=_rest(calls))

    await bot.start()

    assert bot.context.ready.is_set()
    assert bot.context.user["username"] == "switchboard"
    assert gateway.presence == "/help"
    await bot.stop()


@pytest.mark.asyncio
async def test_presence_failure_is_ignored(tmp_path):
    calls = []
    gateway = _FakeGateway(calls)
    gateway.set_presence = AsyncMock(side_effect=RuntimeError("not allowed"))
    bot = SwitchboardBot(_config(tmp_path), gateway=gateway, rest=_rest(calls))

    await bot.start()

    assert bot.context.is_ready
    await bot.stop()


@pytest.mark.asyncio
async def test_auth_failure_propagates(tmp_path):
    calls = []
    gateway = _FakeGateway(calls, connect_error=GatewayAuthError("rejected"))
    bot = SwitchboardBot(_config(tmp_path), gateway=gateway, rest=_rest(calls))

    with pytest.raises(GatewayAuthError):
        await bot.run()
    assert gateway.closed is True


@pytest.mark.asyncio
async def test_strict_duplicates_abort_startup(tmp_path):
    commands = tmp_path / "commands"
    commands.mkdir()
    for stem in ("a", "b"):
        (commands / f"{stem}.py").write_text(
            "schema = {'name': 'dup', 'description': 'dup'}\n"
            "async def execute(interaction, context):\n    pass\n"
        )
    calls = []
    bot = SwitchboardBot(_config(tmp_path, strict=True), gateway=_FakeGateway(calls), rest=_rest(calls))

    with pytest.raises(HandlerConflictError):
        await bot.start()
    assert "connect" not in calls


@pytest.mark.asyncio
async def test_gateway_event_reaches_handler_end_to_end(tmp_path):
    _write_command(tmp_path, "echo", "    await interaction.reply(interaction.options['text'])\n")
    calls = []
    gateway = _FakeGateway(calls)
    bot = SwitchboardBot(_config(tmp_path), gateway=gateway, rest=_rest(calls))
    await bot.start()

    interaction = Interaction(
        "i-1", InteractionKind.CHAT_INPUT, gateway.respond,
        command_name="echo", options={"text": "hello"},
    )
    gateway._emit(interaction)
    await gateway.drain(timeout=1)

    assert gateway.responses == [{"type": "reply", "content": "hello", "ephemeral": False}]
    await bot.stop()


@pytest.mark.asyncio
async def test_unknown_command_end_to_end(tmp_path):
    calls = []
    gateway = _FakeGateway(calls)
    bot = SwitchboardBot(_config(tmp_path), gateway=gateway, rest=_rest(calls))
    await bot.start()

    gateway._emit(Interaction("i-2", InteractionKind.CHAT_INPUT, gateway.respond, command_name="ping"))
    await gateway.drain(timeout=1)

    assert gateway.responses == [
        {"type": "reply", "content": "Command not found.", "ephemeral": True}
    ]
    await bot.stop()


@pytest.mark.asyncio
async def test_stop_is_idempotent(tmp_path):
    calls = []
    rest = _rest(calls)
    bot = SwitchboardBot(_config(tmp_path), gateway=_FakeGateway(calls), rest=rest)
    await bot.start()

    await bot.stop()
    await bot.stop()

    rest.close.assert_awaited_once()
