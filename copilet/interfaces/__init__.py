"""
User-facing surfaces: the prompt boundary, the Python API and the CLI.
"""
