"""
Baseline rule sources for ccpolicy.

- cri: defaults added by the container runtime to every container
- kubernetes: variables and mounts injected by the kubelet
"""

from ccpolicy.rules.cri import (
    DEFAULT_MOUNTS,
    HOSTNAME_ENV,
    PATH_ENV,
    SHARED_CONTAINER_PATH,
    TERM_ENV,
    get_container_rules,
    get_rules as get_cri_rules,
    get_sandbox_rules,
    load_mounts,
)
from ccpolicy.rules.kubernetes import (
    KUBELET_MOUNTS,
    KUBERNETES_PAUSE_NAME,
    KUBERNETES_PAUSE_VERSION,
    KUBERNETES_REGISTRY,
    SERVICE_ENV_PATTERNS,
    get_pause_image_ref,
    get_rules as get_kubernetes_rules,
)

__all__ = [
    # CRI defaults
    "DEFAULT_MOUNTS",
    "HOSTNAME_ENV",
    "PATH_ENV",
    "SHARED_CONTAINER_PATH",
    "TERM_ENV",
    "get_container_rules",
    "get_cri_rules",
    "get_sandbox_rules",
    "load_mounts",
    # Kubernetes defaults
    "KUBELET_MOUNTS",
    "KUBERNETES_PAUSE_NAME",
    "KUBERNETES_PAUSE_VERSION",
    "KUBERNETES_REGISTRY",
    "SERVICE_ENV_PATTERNS",
    "get_pause_image_ref",
    "get_kubernetes_rules",
]
