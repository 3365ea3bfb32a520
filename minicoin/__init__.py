"""A small proof-of-work cryptocurrency node with P2P gossip, mining and a JSON API."""

__version__ = "0.1.0"