"""
Observability for ccpolicy.

Provides logging for following policy compilation runs.
"""

from ccpolicy.observability.logging import (
    HumanReadableFormatter,
    PolicyLogger,
    StructuredFormatter,
    configure_logging,
    get_logger,
)

__all__ = [
    "HumanReadableFormatter",
    "PolicyLogger",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
]
