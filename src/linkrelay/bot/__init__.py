"""Discord-facing glue: gateway adapter, runtime wiring and cogs."""
