"""Service layer — the execution pipeline and parameter redaction.

Services may import from domain, config, and infrastructure protocols.
They hold no connection or transaction state between calls.
"""
