"""Configuration models, constants and YAML loading."""
