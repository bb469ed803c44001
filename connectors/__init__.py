"""
connectors — linked remote data sources exposed as entity trees.

Provides:
  • OAuth2 linking (authorization URL, code exchange, signed state)
  • Per-connector credential storage & auto-refresh
  • Fernet encryption of tokens at rest
  • The Entity / EntitySet capability the host browses

Each provider is a subclass of BaseConnector (see ``fusion_tables``).
"""
