"""
Nekovilo - Keyword Auto-Responder for Discord

Nekovilo watches guild channels and answers messages that contain configured
keywords, unless one of the rule's exception phrases is also present.

Core Components:

- **Rule Store**: SQLite persistence for trigger rules (per guild, per channel set)
- **Trigger Cache**: Immutable in-memory snapshot of every enabled rule, rebuilt
  wholesale at startup, after each rule change, and on a fixed interval
- **Matcher**: First-match-wins keyword/exception evaluation for every message
- **Administration**: Slash commands to add, list, and remove triggers
- **Interactive Console**: Live status, manual reload, and graceful restart/shutdown

Usage:
    from nekovilo.main import main
    main()  # Starts the bot with console interface
"""
