"""Core configuration, identity verification and logging."""

from .config import Settings, settings
from .logging import configure_logging
from .security import decode_identity_token, extract_bearer_token

__all__ = [
    "Settings",
    "settings",
    "configure_logging",
    "decode_identity_token",
    "extract_bearer_token",
]
