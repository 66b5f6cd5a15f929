"""
connectors — OAuth integration module for external services.

Provides a generic connector framework that handles:
  • OAuth2 auth-URL generation with signed CSRF state
  • Callback handling (code → token exchange → profile)
  • Per-user token storage, one connection per provider
  • Fernet encryption of tokens at rest
  • Explicit token refresh and disconnect

Each provider (LinkedIn, …) is a subclass of BaseConnector.
"""
