"""
Cluster access for ccpolicy.

Resolves config map references found in workload manifests.
"""

from ccpolicy.cluster.configmap import (
    ConfigMapSource,
    KubernetesConfigMapSource,
)

__all__ = [
    "ConfigMapSource",
    "KubernetesConfigMapSource",
]
