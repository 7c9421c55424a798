"""
Kubernetes (kubelet) injected rules.

The kubelet adds service-discovery environment variables and a couple of
bind mounts to every application container regardless of what the image
or the manifest declare. The sandbox container receives none of them.
"""

from __future__ import annotations

from typing import Any

from ccpolicy.models import AllowSpec, Process, User
from ccpolicy.rules.cri import SHARED_CONTAINER_PATH, load_mounts

# Pause image of the Kubernetes release the guest runtime targets
KUBERNETES_REGISTRY = "registry.k8s.io"
KUBERNETES_PAUSE_NAME = "pause"
KUBERNETES_PAUSE_VERSION = "3.6"

_IPV4 = r"^((25[0-5]|(2[0-4]|1\d|[1-9]|)\d).?\b){4}"

# Service environment variables, pkg/kubelet/envvars/envvars.go
SERVICE_ENV_PATTERNS: list[str] = [
    "^[A-Z0-9_]+_SERVICE_HOST=" + _IPV4 + "$",
    "^[A-Z0-9_]+_SERVICE_PORT=[0-9]+",
    "^[A-Z0-9_]+_SERVICE_PORT_[A-Z]+=[0-9]+",
    "^[A-Z0-9_]+_SERVICE_PORT_[A-Z0-9_]+=[0-9]+",
    "^[A-Z0-9_]+_PORT=[a-z]+://" + _IPV4 + ":[0-9]+",
    "^[A-Z0-9_]+_PORT_[0-9]+_[A-Z]+=[a-z]+://" + _IPV4 + ":[0-9]+",
    "^[A-Z0-9_]+_PORT_[0-9]+_[A-Z]+_PROTO=[a-z]+",
    "^[A-Z0-9_]+_PORT_[0-9]+_[A-Z]+_PORT=[0-9]+",
    "^[A-Z0-9_]+_PORT_[0-9]+_[A-Z]+_ADDR=" + _IPV4 + "$",
]

KUBELET_MOUNTS: list[dict[str, Any]] = [
    {
        "destination": "/dev/termination-log",
        "source": SHARED_CONTAINER_PATH + "termination-log$",
        "type": "bind",
        "options": ["rbind", "rprivate", "rw"],
    },
    {
        "destination": "/var/run/secrets/kubernetes.io/serviceaccount",
        "source": SHARED_CONTAINER_PATH + "serviceaccount$",
        "type": "bind",
        "options": ["rbind", "rprivate", "ro"],
    },
]


def get_container_rules() -> AllowSpec:
    """Build the kubelet-injected fragment for an application container."""
    return AllowSpec(
        process=Process(user=User(), cwd="", env=list(SERVICE_ENV_PATTERNS)),
        mounts=load_mounts(KUBELET_MOUNTS),
    )


def get_sandbox_rules() -> AllowSpec:
    """The kubelet injects nothing into the sandbox container."""
    return AllowSpec.empty()


def get_rules(is_sandbox: bool = False) -> AllowSpec:
    """Return the orchestrator-default fragment."""
    if is_sandbox:
        return get_sandbox_rules()
    return get_container_rules()


def get_pause_image_ref(
    registry: str = KUBERNETES_REGISTRY,
    name: str = KUBERNETES_PAUSE_NAME,
    version: str = KUBERNETES_PAUSE_VERSION,
) -> str:
    """Return the pause image reference, e.g. registry.k8s.io/pause:3.6."""
    return f"{registry}/{name}:{version}"
