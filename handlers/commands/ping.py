"""Replies with round-trip and gateway latency."""

import discord

from switchboard import Command, CommandSchema


class PingCommand(Command):
    def __init__(self):
        super().__init__(
            CommandSchema(name="ping", description="Ping Pong!"),
            # Add guild ids here to restrict the command to those guilds
            guild_ids=[],
        )

    async def execute(self, event):
        interaction: discord.Interaction = event.raw
        await interaction.response.send_message("Pinging...", silent=True)
        sent = await interaction.original_response()

        latency = int((sent.created_at - interaction.created_at).total_seconds() * 1000)
        api_latency = round(interaction.client.latency * 1000)

        await interaction.edit_original_response(
            content=f"🏓 Pong!\nLatency: {latency}ms\nAPI Latency: {api_latency}ms"
        )
