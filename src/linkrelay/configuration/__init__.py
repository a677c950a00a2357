"""
Configuration management for Link Relay.

- **app_configuration.py**: YAML configuration loader for global settings
  (``config/app_config.yml``). Falls back gracefully on missing or malformed
  config files.

- **relay_settings.py**: typed accessors for the ``relay`` section: delivery
  strategy, webhook name, provenance embed colour, default avatar and the
  retry policy.
"""
