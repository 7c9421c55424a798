"""
Configuration management for ccpolicy.

Provides configuration classes for registry access, cluster access,
the sandbox image and compilation defaults.
"""

from ccpolicy.config.generator_config import (
    ClusterConfig,
    GeneratorConfig,
    RegistryConfig,
    SandboxConfig,
    load_config_from_env,
)

__all__ = [
    "ClusterConfig",
    "GeneratorConfig",
    "RegistryConfig",
    "SandboxConfig",
    "load_config_from_env",
]
