"""Configuration, dependencies and shared rules."""
