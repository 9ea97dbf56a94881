# providers.py
import logging
from typing import Dict, List

from .exceptions import UnknownProviderError
from .gdrive import GoogleDriveClient
from .storage.base import StorageClient


class ProviderRegistry:
    """Maps a provider name (as used in URLs, cookies and OAuth2 states) to its storage client."""

    def __init__(self):
        self._clients: Dict[str, StorageClient] = {}

    def register(self, name: str, client: StorageClient):
        if name in self._clients:
            logging.warning(f"Replacing the storage client registered as '{name}'.")
        self._clients[name] = client

    def get(self, name: str) -> StorageClient:
        try:
            return self._clients[name]
        except KeyError:
            raise UnknownProviderError() from None

    def names(self) -> List[str]:
        return sorted(self._clients)

    def __contains__(self, name: str) -> bool:
        return name in self._clients


def _init_gdrive_client(settings) -> GoogleDriveClient | None:
    """Initializes and returns a GoogleDriveClient."""
    client_config = settings.gdrive_client_config
    if client_config is None:
        logging.info("Google Drive OAuth client is not configured. Skipping the 'google' provider.")
        return None
    try:
        return GoogleDriveClient(
            client_config=client_config,
            redirect_uri=settings.GDRIVE_REDIRECT_URI,
        )
    except Exception as e:
        logging.error(
            f"Failed to initialize Google Drive client. Error: {e}", exc_info=True
        )
        return None


def build_registry(settings) -> ProviderRegistry:
    """
    Builds the registry of every storage provider that is configured in the settings.
    """
    registry = ProviderRegistry()

    gdrive_client = _init_gdrive_client(settings)
    if gdrive_client is not None:
        registry.register("google", gdrive_client)

    if not registry.names():
        logging.critical("No storage provider is configured. Every request will fail.")
    else:
        logging.info(f"Registered storage providers: {', '.join(registry.names())}")
    return registry
