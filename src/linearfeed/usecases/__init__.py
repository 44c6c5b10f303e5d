"""
Application usecases.

The CLI and the HTTP API call functions from here instead of touching the
stores directly.
"""
