"""Types, label signing and queries, a feed generator, handle-gateway clients and a localnet handle admin service for bridging Nostr video content to the AT Protocol."""

__version__ = "0.1.0"