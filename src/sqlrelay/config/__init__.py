"""Configuration — option models, settings sources, and logging setup."""
