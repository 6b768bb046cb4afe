"""Text conferencing: packet format, user and session registry, server and client."""

__version__ = "0.1.0"
__all__ = ["packet", "registry", "server", "client"]