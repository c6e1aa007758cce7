"""Loopback listener and redirect capture server."""
