"""
Utility helpers for Link Relay.

- **logger.py**: Centralized logging configuration with colored console output,
  rotating file handlers, and per-session log aggregation. Suppresses noise from
  Discord internals and networking layers. Uses prompt_toolkit for non-blocking
  console I/O.
"""
