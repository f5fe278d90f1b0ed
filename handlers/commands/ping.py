"""/ping: liveness check."""

schema = {
    "name": "ping",
    "description": "Check that the bot is responding",
}


async def execute(interaction, context):
    await interaction.reply("Pong!", ephemeral=True)
