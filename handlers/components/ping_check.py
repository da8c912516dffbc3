"""The pingCheck button: measures latency again, ephemerally."""

import discord

from switchboard import Component


class PingCheckButton(Component):
    def __init__(self):
        super().__init__("pingCheck")

    async def execute(self, event):
        interaction: discord.Interaction = event.raw
        await interaction.response.defer(ephemeral=True, thinking=True)

        latency = int((discord.utils.utcnow() - interaction.created_at).total_seconds() * 1000)
        api_latency = round(interaction.client.latency * 1000)

        await interaction.edit_original_response(
            content=f"🏓 Pong again!\nLatency: {latency}ms\nAPI Latency: {api_latency}ms"
        )
