"""Bootstrap (composition root) for E-Info.

Assembles the database service at runtime: reads configuration, injects the
concrete connection strategies, normalizer and redactor into the service
layer, and owns process lifecycle (startup policy and shutdown hooks).

Import rules:
- Entry points import *this* package (not adapters/service_layer/interfaces).
- This package may import: `einfo.adapters`, `einfo.service_layer`,
  `einfo.interfaces`, and `einfo.config`.
- Inner layers must not import `einfo.bootstrap`.
"""

from .bootstrap import (
    AppContainer,
    ShutdownHooks,
    bootstrap,
    build_database,
    install_shutdown_hooks,
)

__all__ = [
    "AppContainer",
    "ShutdownHooks",
    "bootstrap",
    "build_database",
    "install_shutdown_hooks",
]
