"""
Policy compilation for ccpolicy.

- builder: merges the rule sources of a single container
- assembler: builds policy documents for workloads and manifest streams
"""

from ccpolicy.compiler.builder import (
    ContainerPolicyBuilder,
    build_container_policy,
)
from ccpolicy.compiler.assembler import (
    SANDBOX_CONTAINER_NAME,
    PolicyAssembler,
    StreamResult,
    image_ref_key,
)

__all__ = [
    # Builder
    "ContainerPolicyBuilder",
    "build_container_policy",
    # Assembler
    "SANDBOX_CONTAINER_NAME",
    "PolicyAssembler",
    "StreamResult",
    "image_ref_key",
]
