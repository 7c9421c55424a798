"""
Workload manifest handling for ccpolicy.

Provides extraction of containers, volumes and per-container settings
from Kubernetes manifests, and injection of the compiled policy back
into them.
"""

from ccpolicy.manifest.workload import (
    ContainerView,
    Debugging,
    EntryPoint,
    SecurityContext,
    Volume,
    VolumeType,
    WorkloadKind,
    WorkloadManifest,
    extract,
)
from ccpolicy.manifest.annotate import (
    CC_POLICY_ANNOTATION,
    inject_policy,
)

__all__ = [
    # Extraction
    "ContainerView",
    "Debugging",
    "EntryPoint",
    "SecurityContext",
    "Volume",
    "VolumeType",
    "WorkloadKind",
    "WorkloadManifest",
    "extract",
    # Annotation
    "CC_POLICY_ANNOTATION",
    "inject_policy",
]
