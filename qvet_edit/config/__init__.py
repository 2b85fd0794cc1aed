"""Configuration loading (YAML + JSON schema) and credentials."""
