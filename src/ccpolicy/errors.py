"""
Exceptions for ccpolicy.

Every failure raised while compiling a policy derives from PolicyError so
callers can abort a whole document with a single except clause.
"""

from __future__ import annotations


# =============================================================================
# Base
# =============================================================================

class PolicyError(Exception):
    """Base error for policy compilation."""
    pass


class RuleTemplateError(PolicyError):
    """An embedded rule template could not be parsed."""
    pass


class ConfigError(PolicyError):
    """Configuration file could not be loaded."""
    pass


class NoCommandError(PolicyError):
    """Neither the workload nor the image provides a command."""

    def __init__(self) -> None:
        super().__init__("no command specified")


# =============================================================================
# Malformed input
# =============================================================================

class ManifestError(PolicyError):
    """A manifest field is missing or has the wrong shape."""

    def __init__(self, message: str, field_path: str | None = None):
        self.field_path = field_path
        prefix = f"{field_path}: " if field_path else ""
        super().__init__(f"{prefix}{message}")


class UnsupportedKindError(ManifestError):
    """The workload kind is not one we know how to compile."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"unsupported kind: {kind}", field_path="kind")


class UnsupportedReferenceError(ManifestError):
    """An env valueFrom uses a reference kind we cannot resolve."""
    pass


class VolumeNotFoundError(ManifestError):
    """A volumeMount names a volume that is not declared."""
    pass


class MountPropagationError(ManifestError):
    """A volumeMount uses an unknown mountPropagation mode."""
    pass


# =============================================================================
# External collaborators
# =============================================================================

class CollaboratorError(PolicyError):
    """An external tool or API call failed."""

    def __init__(self, message: str, diagnostic: str = ""):
        self.diagnostic = diagnostic
        if diagnostic:
            message = f"{message}: {diagnostic}"
        super().__init__(message)


class ImageInspectError(CollaboratorError):
    """Image configuration could not be retrieved from the registry."""
    pass


class ConfigMapLookupError(CollaboratorError):
    """A config map or one of its keys could not be read."""
    pass
