"""
API Module - Gateway to the remote move authority.

The client is the only component that talks HTTP. It:
1. Loads authoritative state
2. Previews moves (word game)
3. Commits moves and auxiliary actions
4. Refreshes credentials once after a 401

Credentials are injected, never global.
"""

from .client import MoveAuthorityClient
from .credentials import (
    CredentialProvider,
    StaticCredentialProvider,
    TokenCredentialProvider,
)

__all__ = [
    "MoveAuthorityClient",
    "CredentialProvider",
    "StaticCredentialProvider",
    "TokenCredentialProvider",
]
