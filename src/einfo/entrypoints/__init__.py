"""Entrypoints (inbound adapters) for E-Info.

Expose the application to the outside world: currently the `einfo` CLI. Parse
and validate inputs, call into the bootstrap container, and present results.

Dependency rule: may import `einfo.bootstrap` and `einfo.service_layer`; avoid
importing `einfo.adapters` directly.
"""
