"""
Relay core for Link Relay.

- **link_detection.py**: decides whether a message carries a link and is
  therefore eligible for relaying.
- **embed_transform.py**: deep-copies source embeds, stamps provenance on the
  first one, and builds the stand-in embed for embed-less messages.
- **routing_table.py**: atomically swappable index of channel and role
  bindings.
- **retry.py**: generic retry with exponential backoff and jitter.
- **delivery.py**: direct and webhook delivery strategies behind one contract.
- **orchestrator.py**: per-message fan-out to every destination and the
  aggregated relay report.
- **report_formatting.py** / **message_debug.py**: text for command replies
  and debug logging.
"""
