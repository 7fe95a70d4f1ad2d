"""CLI helpers for E-Info.

Message emitters that write to stderr with emoji to ASCII fallbacks, and the
parser for per-logger level options.
"""

from .messages import error, success, warn

__all__ = ["error", "success", "warn"]
