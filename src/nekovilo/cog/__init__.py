"""
Discord cogs for Nekovilo.

- **listener/message_listener.py**: Feeds every guild message to the matcher
  and sends the reply
- **listener/events_listener.py**: Bot lifecycle (presence, guild removal)
- **commands/trigger_cmds.py**: Trigger administration slash commands
- **commands/general_cmds.py**: /ping, /status and /help
"""
