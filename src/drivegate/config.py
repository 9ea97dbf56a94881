import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_PROVIDERS = ("google",)


class Settings(BaseSettings):
    """
    Centralized application configuration with type validation.
    Automatically reads variables from the environment and the .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- General Settings ---
    LOG_LEVEL: str = "INFO"
    HOST: str = "127.0.0.1"
    PORT: int = 8080
    CORS_ORIGINS: List[str] = []
    DEFAULT_PROVIDER: str = "google"  # Used when the request has no "provider" cookie

    # --- Google Drive Settings ---
    # Either the full OAuth client JSON downloaded from the Google console,
    # or the client id and secret on their own.
    GDRIVE_CREDENTIALS_JSON: Optional[str] = None
    GDRIVE_CLIENT_ID: Optional[str] = None
    GDRIVE_CLIENT_SECRET: Optional[str] = None
    GDRIVE_REDIRECT_URI: str = "http://localhost:8080/oauth2/callback"

    # --- OAuth2 / Streaming Settings ---
    # Signs the session cookie that binds an OAuth2 state to the client that asked for it
    SESSION_SECRET_KEY: Optional[str] = None
    SESSION_HTTPS_ONLY: bool = False
    OAUTH_STATE_TTL_SECONDS: int = 600
    STREAM_CHUNK_SIZE: int = 64 * 1024

    # --- Constants and Computed Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent

    @model_validator(mode="after")
    def validate_provider_settings(self):
        if self.DEFAULT_PROVIDER not in SUPPORTED_PROVIDERS:
            raise ValueError(
                f"Invalid DEFAULT_PROVIDER. Must be one of: {', '.join(SUPPORTED_PROVIDERS)}."
            )

        if self.GDRIVE_CREDENTIALS_JSON:
            try:
                config = json.loads(self.GDRIVE_CREDENTIALS_JSON)
            except ValueError as e:
                raise ValueError(f"GDRIVE_CREDENTIALS_JSON is not valid JSON: {e}")
            if not isinstance(config, dict) or not ({"web", "installed"} & config.keys()):
                raise ValueError(
                    "GDRIVE_CREDENTIALS_JSON must contain a 'web' or 'installed' section."
                )
        elif bool(self.GDRIVE_CLIENT_ID) != bool(self.GDRIVE_CLIENT_SECRET):
            raise ValueError(
                "GDRIVE_CLIENT_ID and GDRIVE_CLIENT_SECRET must be set together."
            )
        elif not self.GDRIVE_CLIENT_ID:
            logging.warning(
                "No Google Drive OAuth client configured. The 'google' provider will be unavailable."
            )

        if self.STREAM_CHUNK_SIZE <= 0:
            raise ValueError("STREAM_CHUNK_SIZE must be a positive number of bytes.")

        return self

    @property
    def gdrive_client_config(self) -> Optional[dict]:
        """The OAuth client configuration in the format google-auth-oauthlib expects."""
        if self.GDRIVE_CREDENTIALS_JSON:
            return json.loads(self.GDRIVE_CREDENTIALS_JSON)
        if self.GDRIVE_CLIENT_ID and self.GDRIVE_CLIENT_SECRET:
            return {
                "web": {
                    "client_id": self.GDRIVE_CLIENT_ID,
                    "client_secret": self.GDRIVE_CLIENT_SECRET,
                    "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                    "token_uri": "https://oauth2.googleapis.com/token",
                    "redirect_uris": [self.GDRIVE_REDIRECT_URI],
                }
            }
        return None

    @property
    def LOG_FILE(self) -> Path:
        return self.BASE_DIR / "app.log"


@lru_cache()
def get_settings() -> Settings:
    """
    Returns a cached instance of the application settings.
    The first call to this function will initialize the settings.
    """
    return Settings()
