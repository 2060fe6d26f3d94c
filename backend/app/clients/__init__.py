"""Exchange clients."""

from app.clients.robinhood import CredentialsError, RobinhoodCryptoClient, load_signing_key

__all__ = [
    "CredentialsError",
    "RobinhoodCryptoClient",
    "load_signing_key",
]
