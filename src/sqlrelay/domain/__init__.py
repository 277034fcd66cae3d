"""Domain layer — request types, enums, cancellation, and parameter containers.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, or config.
"""
