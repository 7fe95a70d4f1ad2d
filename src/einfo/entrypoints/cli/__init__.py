"""Command-line interface for E-Info."""
