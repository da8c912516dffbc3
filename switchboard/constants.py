"""Default values shared by the loader, publisher and transport."""

# MANAGE_GUILD permission bit. Commands default to requiring it.
PERMISSION_MANAGE_GUILD = 1 << 5

DEFAULT_COMMAND_PERMISSIONS = PERMISSION_MANAGE_GUILD

# Commands are not usable in direct messages unless a handler opts in
DEFAULT_DM_PERMISSION = False

# discord.Intents flag names enabled when settings.yaml lists none
DEFAULT_CLIENT_INTENTS = (
    "guilds",
    "integrations",
    "guild_messages",
    "guild_reactions",
    "members",
    "dm_messages",
    "message_content",
)

# Handler categories, in startup load order
CATEGORY_COMPONENT = "component"
CATEGORY_COMMAND = "command"
CATEGORY_EVENT_LISTENER = "event listener"
