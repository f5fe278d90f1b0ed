"""Vote buttons posted by /poll (custom ids ``vote:<choice>``)."""

routing_key = "vote"


async def execute(interaction, context):
    _, _, choice = (interaction.custom_id or "").partition(":")
    await interaction.reply(f"Recorded your vote: {choice or 'unknown'}", ephemeral=True)
