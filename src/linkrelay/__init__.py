"""
Link Relay - Cross-Server Discord Link Broadcasting Bot

Link Relay watches designated "input" channels across a network of Discord
servers. Whenever a message carrying a link is posted in one of them, the bot
broadcasts a faithful copy to the matching "output" channel of every other
registered server, mentioning the role each server configured for that
category and attributing the message to its origin.

Core Components:

- **Link Detection**: Side-effect-free predicate deciding whether a message
  (text, embeds, attachments) carries a URL worth relaying
- **Routing Table**: Atomically swappable snapshot of channel and role
  bindings loaded from the SQLite store
- **Embed Transform**: Deep copies of source embeds annotated with provenance,
  plus a fallback provenance embed for plain-text messages
- **Delivery**: Direct send or webhook impersonation, with retry and backoff
- **Relay Orchestrator**: Concurrent fan-out to every destination server,
  aggregated into a single relay report
- **Command Surface**: /retry, /test, /target-test and /relay-reload slash
  commands, plus an interactive operator console

Usage:
    from linkrelay.main import main
    main()  # Starts the bot with console interface
"""
