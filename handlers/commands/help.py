"""/help: list registered commands, with autocomplete on the command name."""

schema = {
    "name": "help",
    "description": "Show available commands",
    "options": [
        {
            "type": 3,
            "name": "command",
            "description": "Show details for one command",
            "required": False,
            "autocomplete": True,
        },
    ],
}


async def execute(interaction, context):
    commands = context.registry.commands
    wanted = interaction.options.get("command")
    if wanted:
        unit = commands.get(wanted)
        if unit is None:
            await interaction.reply(f"No command named /{wanted}.", ephemeral=True)
            return
        await interaction.reply(f"/{unit.name}: {unit.schema.description}", ephemeral=True)
        return

    lines = [f"/{name}: {unit.schema.description}" for name, unit in sorted(commands.items())]
    await interaction.reply("\n".join(lines) or "No commands registered.", ephemeral=True)


async def autocomplete(interaction, context):
    typed = str(interaction.options.get(interaction.focused or "command") or "").lower()
    names = sorted(n for n in context.registry.command_names if n.startswith(typed))
    await interaction.respond_autocomplete([{"name": n, "value": n} for n in names])
