"""Low-level table repositories used by the binding store."""
