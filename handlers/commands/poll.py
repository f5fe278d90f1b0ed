"""/poll: post a yes/no question with vote buttons.

Button custom ids are ``vote:<yes|no>``; the component handler
registered under ``vote`` receives both through prefix routing.
"""

schema = {
    "name": "poll",
    "description": "Ask a yes/no question",
    "options": [
        {
            "type": 3,
            "name": "question",
            "description": "What to ask",
            "required": True,
        },
    ],
}


async def execute(interaction, context):
    question = interaction.options.get("question", "")
    await interaction.reply(
        question,
        components=[
            {"type": "button", "label": "Yes", "custom_id": "vote:yes"},
            {"type": "button", "label": "No", "custom_id": "vote:no"},
        ],
    )
