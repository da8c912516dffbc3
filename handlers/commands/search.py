"""Example command with autocomplete suggestions."""

import discord

from switchboard import Command, CommandOption, CommandOptionType, CommandSchema

SUGGESTIONS = ("apple", "banana", "cherry", "date", "elderberry")


class SearchCommand(Command):
    def __init__(self):
        super().__init__(
            CommandSchema(
                name="example",
                description="An example command with autocomplete.",
                options=[
                    CommandOption(
                        type=CommandOptionType.STRING,
                        name="query",
                        description="Type to get suggestions",
                        autocomplete=True,
                        required=True,
                    )
                ],
            )
        )

    async def execute(self, event):
        query = event.get_option("query")
        await event.raw.response.send_message(f"You searched for: {query}")

    async def autocomplete(self, event):
        focused = event.focused_value.lower()
        matches = [s for s in SUGGESTIONS if s.startswith(focused)]
        await event.raw.response.autocomplete(
            [discord.app_commands.Choice(name=s, value=s) for s in matches]
        )
