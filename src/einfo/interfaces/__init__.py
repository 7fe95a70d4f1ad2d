"""Interfaces (application boundary) for E-Info.

Defines framework-free application contracts: ABCs and small DTOs shared by the
service layer and adapters (connection handles, strategy descriptors, query and
health results, the database error taxonomy, the redactor).

Dependency rule: this package is independent; do not import from any other
`einfo.*` modules. It may be imported by `einfo.service_layer`,
`einfo.adapters`, `einfo.bootstrap` and `einfo.config`.
"""
