"""Peer-to-peer betting market with house-managed odds."""

__version__ = "0.1.0"
