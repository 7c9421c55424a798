"""
Merge engine for ccpolicy.

Combines allow-list fragments from the runtime, the orchestrator, the
image and the manifest with the runtime's own precedence rules.
"""

from ccpolicy.engine.merge import (
    PRIVILEGED_WRITABLE_TYPES,
    adjust_privileged_mounts,
    merge_args,
    merge_cwd,
    merge_env,
    merge_mounts,
)

__all__ = [
    "PRIVILEGED_WRITABLE_TYPES",
    "adjust_privileged_mounts",
    "merge_args",
    "merge_cwd",
    "merge_env",
    "merge_mounts",
]
