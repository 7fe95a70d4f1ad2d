"""Service layer for E-Info.

Implements the connection bootstrapper and the uniform query / transaction /
health-check facade, plus the health report served to probes. Works only
against `einfo.interfaces`; concrete strategies are injected by
`einfo.bootstrap`.

Dependency rule: may import `einfo.interfaces`, but not `einfo.adapters` or
`einfo.entrypoints`.
"""
