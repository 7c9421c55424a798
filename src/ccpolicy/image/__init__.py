"""
Container image access for ccpolicy.

Provides the image configuration model and the registry collaborator
used to retrieve it.
"""

from ccpolicy.image.config import ImageConfig
from ccpolicy.image.registry import (
    DEFAULT_REGISTRY,
    DEFAULT_TRANSPORT,
    ImageConfigSource,
    SkopeoInspector,
    normalize_image_reference,
)

__all__ = [
    "DEFAULT_REGISTRY",
    "DEFAULT_TRANSPORT",
    "ImageConfig",
    "ImageConfigSource",
    "SkopeoInspector",
    "normalize_image_reference",
]
