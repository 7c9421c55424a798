"""
Data models for ccpolicy.

This package provides the core data models used throughout ccpolicy:

- AllowSpec: OCI runtime-spec fragment holding the allowed process and mounts
- Mount / Process / User: the pieces of an AllowSpec
- ContainerPolicy: a finished AllowSpec plus auxiliary constraints
- PolicyDocument: all container policies of one workload
"""

from ccpolicy.models.oci import (
    OCI_VERSION,
    AllowSpec,
    Mount,
    Process,
    User,
)
from ccpolicy.models.policy import (
    POLICY_VERSION,
    ContainerPolicy,
    Custom,
    PolicyDocument,
)

__all__ = [
    # OCI module
    "OCI_VERSION",
    "AllowSpec",
    "Mount",
    "Process",
    "User",
    # Policy module
    "POLICY_VERSION",
    "ContainerPolicy",
    "Custom",
    "PolicyDocument",
]
