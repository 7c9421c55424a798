"""
Policy annotation injection.

The guest runtime reads the compiled policy from an annotation on the pod,
so the encoded policy is written into the pod template's metadata.
"""

from __future__ import annotations

import logging
from typing import Any

from ccpolicy.errors import ManifestError
from ccpolicy.manifest.workload import WorkloadKind

logger = logging.getLogger(__name__)

CC_POLICY_ANNOTATION = "io.katacontainers.cc_policy"


def inject_policy(
    document: dict[str, Any],
    kind: WorkloadKind,
    policy_base64: str,
) -> dict[str, Any]:
    """
    Write the encoded policy into the pod annotations in place.

    metadata and annotations mappings are created when missing; an
    existing policy annotation is overwritten.

    Args:
        document: Raw workload manifest
        kind: Workload kind, decides where the pod template lives
        policy_base64: Encoded policy document

    Returns:
        The same document, for chaining
    """
    template: Any = document
    path = ""
    for key in kind.template_path:
        path = f"{path}.{key}" if path else key
        template = template.get(key) if isinstance(template, dict) else None
        if not isinstance(template, dict):
            raise ManifestError("failed to parse pod into mapping", field_path=path)

    metadata = template.setdefault("metadata", {})
    if not isinstance(metadata, dict):
        raise ManifestError("failed to get metadata", field_path=f"{path}.metadata".lstrip("."))

    annotations = metadata.get("annotations")
    if annotations is None:
        annotations = metadata["annotations"] = {}
    if not isinstance(annotations, dict):
        raise ManifestError(
            "failed to get annotations", field_path=f"{path}.metadata.annotations".lstrip(".")
        )

    annotations[CC_POLICY_ANNOTATION] = policy_base64
    logger.debug(f"Injected policy annotation into {kind.value} ({len(policy_base64)} bytes)")
    return document
