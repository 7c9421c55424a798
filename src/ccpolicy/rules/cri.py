"""
Container runtime (CRI) default rules.

Reproduces the defaults containerd's CRI plugin puts into every container
spec it creates: the root process identity, the HOSTNAME/PATH/TERM
environment, and the standard set of kernel filesystem mounts.

Reference: https://github.com/containerd/containerd/tree/release/1.6/pkg/cri
"""

from __future__ import annotations

import logging
from typing import Any

from ccpolicy.engine.merge import adjust_privileged_mounts
from ccpolicy.errors import RuleTemplateError
from ccpolicy.models import OCI_VERSION, AllowSpec, Mount, Process, User

logger = logging.getLogger(__name__)

# Per-container files shared into the guest are named <sandbox>-<container>-<file>
SHARED_CONTAINER_PATH = "^/run/kata-containers/shared/containers/[a-z0-9]+-[a-z0-9]+-"

HOSTNAME_ENV = "^HOSTNAME=.+"
PATH_ENV = "^PATH=/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin$"
TERM_ENV = "TERM=xterm"

# Mounts common to sandbox and regular containers, oci/mounts.go
DEFAULT_MOUNTS: list[dict[str, Any]] = [
    {
        "destination": "/proc",
        "source": "^proc$",
        "type": "proc",
        "options": ["nosuid", "noexec", "nodev"],
    },
    {
        "destination": "/dev",
        "source": "^tmpfs$",
        "type": "tmpfs",
        "options": ["nosuid", "strictatime", "mode=755", "size=65536k"],
    },
    {
        "destination": "/dev/pts",
        "source": "^devpts$",
        "type": "devpts",
        "options": [
            "nosuid", "noexec", "newinstance", "ptmxmode=0666", "mode=0620", "gid=5",
        ],
    },
    {
        "destination": "/dev/mqueue",
        "source": "^mqueue$",
        "type": "mqueue",
        "options": ["nosuid", "noexec", "nodev"],
    },
    {
        "destination": "/dev/shm",
        "source": "^/run/kata-containers/sandbox/shm$",
        "type": "bind",
        "options": ["rbind"],
    },
    {
        "destination": "/sys",
        "source": "^sysfs$",
        "type": "sysfs",
        "options": ["nosuid", "noexec", "nodev", "ro"],
    },
]

# Read-only cgroup, opts/spec_linux.go
CGROUP_MOUNT: dict[str, Any] = {
    "destination": "/sys/fs/cgroup",
    "source": "^cgroup$",
    "type": "cgroup",
    "options": ["nosuid", "noexec", "nodev", "relatime", "ro"],
}

# /etc files of regular containers, server/container_create_linux.go.
# /dev/shm is also added there but DEFAULT_MOUNTS already covers it.
CONTAINER_ETC_MOUNTS: list[dict[str, Any]] = [
    {
        "destination": "/etc/hostname",
        "source": SHARED_CONTAINER_PATH + "hostname$",
        "type": "bind",
        "options": ["rbind", "rprivate", "rw"],
    },
    {
        "destination": "/etc/hosts",
        "source": SHARED_CONTAINER_PATH + "hosts$",
        "type": "bind",
        "options": ["rbind", "rprivate", "rw"],
    },
    {
        "destination": "/etc/resolv.conf",
        "source": SHARED_CONTAINER_PATH + "resolv.conf$",
        "type": "bind",
        "options": ["rbind", "rprivate", "rw"],
    },
]

# Sandbox resolv.conf, server/sandbox_run_linux.go
SANDBOX_RESOLV_MOUNT: dict[str, Any] = {
    "destination": "/etc/resolv.conf",
    "source": SHARED_CONTAINER_PATH + "resolv.conf$",
    "type": "bind",
    "options": ["rbind", "ro"],
}


def load_mounts(templates: list[dict[str, Any]]) -> list[Mount]:
    """
    Build Mount objects from embedded templates.

    Raises:
        RuleTemplateError: If a template is malformed
    """
    mounts = []
    for template in templates:
        try:
            mounts.append(Mount.from_dict(template))
        except (KeyError, TypeError, AttributeError) as e:
            raise RuleTemplateError(f"invalid mount template {template!r}: {e}") from e
    return mounts


def _default_process(env: list[str], tty: bool) -> Process:
    # populateDefaultUnixSpec, oci/spec.go
    return Process(user=User(uid=0, gid=0), cwd="/", env=env, terminal=tty)


def get_container_rules(privileged: bool = False, tty: bool = False) -> AllowSpec:
    """
    Build the runtime defaults for a regular container.

    Args:
        privileged: Container runs privileged
        tty: Container has a terminal attached

    Returns:
        AllowSpec fragment with default process, env and mounts
    """
    env = [HOSTNAME_ENV, PATH_ENV]
    if tty:
        env.append(TERM_ENV)

    mounts = load_mounts(DEFAULT_MOUNTS)
    mounts.extend(load_mounts([CGROUP_MOUNT]))
    mounts.extend(load_mounts(CONTAINER_ETC_MOUNTS))

    if privileged:
        adjust_privileged_mounts(mounts)

    return AllowSpec(
        oci_version=OCI_VERSION,
        process=_default_process(env, tty),
        mounts=mounts,
    )


def get_sandbox_rules(privileged: bool = False, tty: bool = False) -> AllowSpec:
    """
    Build the runtime defaults for the sandbox (pause) container.

    The sandbox gets no HOSTNAME/PATH patterns and no cgroup mount.
    """
    env = [TERM_ENV] if tty else []

    mounts = load_mounts(DEFAULT_MOUNTS)
    mounts.extend(load_mounts([SANDBOX_RESOLV_MOUNT]))

    if privileged:
        adjust_privileged_mounts(mounts)

    return AllowSpec(
        oci_version=OCI_VERSION,
        process=_default_process(env, tty),
        mounts=mounts,
    )


def get_rules(is_sandbox: bool, privileged: bool = False, tty: bool = False) -> AllowSpec:
    """Return the runtime-default fragment for a sandbox or regular container."""
    if is_sandbox:
        return get_sandbox_rules(privileged, tty)
    return get_container_rules(privileged, tty)
