"""E-Info

Backend core for the E-Info digital-profile service. Establishes the process's
database connection through an ordered set of fallback strategies and exposes
a uniform query, transaction and health-check surface over whichever strategy
won.
"""

__all__ = ["__version__"]
__version__ = "1.0.0"
