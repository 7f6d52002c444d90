"""Metadata services built on the command mediator."""

from fsguardian.services.spotlight_service import SpotlightService
from fsguardian.services.xattr_service import XattrService

__all__ = [
    "SpotlightService",
    "XattrService",
]
