"""
ccpolicy - Security policy generation for confidential containers

Compiles Kubernetes workload manifests into allow-list policies that the
guest agent of a confidential container sandbox enforces. Each policy
lists, per container, the exact process (arguments, environment pattern
rules, working directory) and mounts the container may be created with.

Key Features:
- Pod, Job, Deployment and ReplicationController manifests
- Image configuration inspection through skopeo
- configMapKeyRef resolution through the Kubernetes API
- Policy injected as a pod annotation, ready to apply

Quick Start:
    >>> from ccpolicy import PolicyAssembler, SkopeoInspector
    >>>
    >>> assembler = PolicyAssembler(SkopeoInspector(), with_default_rules=True)
    >>> result = assembler.compile_stream(open("pod.yaml").read())
    >>> print(result.policy_base64)
"""

from __future__ import annotations

__version__ = "0.1.0"

# Core models
from ccpolicy.models import (
    OCI_VERSION,
    POLICY_VERSION,
    AllowSpec,
    ContainerPolicy,
    Custom,
    Mount,
    PolicyDocument,
    Process,
    User,
)

# Errors
from ccpolicy.errors import (
    CollaboratorError,
    ConfigError,
    ConfigMapLookupError,
    ImageInspectError,
    ManifestError,
    MountPropagationError,
    NoCommandError,
    PolicyError,
    RuleTemplateError,
    UnsupportedKindError,
    UnsupportedReferenceError,
    VolumeNotFoundError,
)

# Merge engine
from ccpolicy.engine import (
    adjust_privileged_mounts,
    merge_args,
    merge_cwd,
    merge_env,
    merge_mounts,
)

# Rule sources
from ccpolicy.rules import (
    get_cri_rules,
    get_kubernetes_rules,
    get_pause_image_ref,
)

# Image access
from ccpolicy.image import (
    ImageConfig,
    ImageConfigSource,
    SkopeoInspector,
    normalize_image_reference,
)

# Cluster access
from ccpolicy.cluster import (
    ConfigMapSource,
    KubernetesConfigMapSource,
)

# Manifests
from ccpolicy.manifest import (
    CC_POLICY_ANNOTATION,
    ContainerView,
    WorkloadKind,
    WorkloadManifest,
    extract,
    inject_policy,
)

# Configuration
from ccpolicy.config import (
    GeneratorConfig,
    load_config_from_env,
)

# Compilation
from ccpolicy.compiler import (
    ContainerPolicyBuilder,
    PolicyAssembler,
    StreamResult,
    build_container_policy,
)

__all__ = [
    # Version
    "__version__",
    # Models
    "OCI_VERSION",
    "POLICY_VERSION",
    "AllowSpec",
    "ContainerPolicy",
    "Custom",
    "Mount",
    "PolicyDocument",
    "Process",
    "User",
    # Errors
    "CollaboratorError",
    "ConfigError",
    "ConfigMapLookupError",
    "ImageInspectError",
    "ManifestError",
    "MountPropagationError",
    "NoCommandError",
    "PolicyError",
    "RuleTemplateError",
    "UnsupportedKindError",
    "UnsupportedReferenceError",
    "VolumeNotFoundError",
    # Merge engine
    "adjust_privileged_mounts",
    "merge_args",
    "merge_cwd",
    "merge_env",
    "merge_mounts",
    # Rule sources
    "get_cri_rules",
    "get_kubernetes_rules",
    "get_pause_image_ref",
    # Image access
    "ImageConfig",
    "ImageConfigSource",
    "SkopeoInspector",
    "normalize_image_reference",
    # Cluster access
    "ConfigMapSource",
    "KubernetesConfigMapSource",
    # Manifests
    "CC_POLICY_ANNOTATION",
    "ContainerView",
    "WorkloadKind",
    "WorkloadManifest",
    "extract",
    "inject_policy",
    # Configuration
    "GeneratorConfig",
    "load_config_from_env",
    # Compilation
    "ContainerPolicyBuilder",
    "PolicyAssembler",
    "StreamResult",
    "build_container_policy",
]
