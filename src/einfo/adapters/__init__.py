"""Adapters (infrastructure) for E-Info.

Provide concrete implementations of the interfaces: SQLAlchemy and psycopg
connection handles, engine construction, connection-string rewriting, the
default strategy list and the DSN redactor.

Dependency rule: may import `einfo.interfaces`; the service layer must not
import this package.
"""
