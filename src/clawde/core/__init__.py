"""Core infrastructure: configuration and the exception hierarchy."""
