"""
Cross-cutting infrastructure for Copilet: logging, error taxonomy and
rate limit tracking.
"""
