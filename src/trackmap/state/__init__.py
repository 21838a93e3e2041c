"""State layer.

This package is the single source of truth for which map implementation
a view shows and where it is in its loading/upgrade lifecycle.
"""
