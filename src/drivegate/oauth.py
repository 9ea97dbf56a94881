# oauth.py
import logging
import secrets
import time
from datetime import timezone

from google_auth_oauthlib.flow import Flow

from .exceptions import AuthCodeError, InvalidStateError
from .storage.dto import TokenInfo

# The scope for Google Drive API
SCOPES = ["https://www.googleapis.com/auth/drive"]


def build_flow(client_config: dict, redirect_uri: str) -> Flow:
    """
    Creates an OAuth 2.0 web flow for the Google Drive API.

    The authorization URL and the code exchange are served by separate
    requests, so no PKCE code verifier is generated.
    """
    return Flow.from_client_config(
        client_config,
        scopes=SCOPES,
        redirect_uri=redirect_uri,
        autogenerate_code_verifier=False,
    )


def authorization_url(flow: Flow, state: str) -> str:
    url, _ = flow.authorization_url(
        access_type="offline",
        prompt="consent",
        state=state,
    )
    return url


def exchange_code(flow: Flow, code: str) -> TokenInfo:
    """Exchanges an authorization code for an access token and its expiry."""
    if not code:
        raise AuthCodeError()
    try:
        flow.fetch_token(code=code)
    except Exception as e:
        logging.error(f"Failed to exchange the authorization code: {e}")
        raise AuthCodeError() from e

    creds = flow.credentials
    if not creds.token:
        raise AuthCodeError()

    expiry = creds.expiry
    # google-auth reports expiry as a naive UTC datetime
    if expiry is not None and expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return TokenInfo(access_token=creds.token, expiry=expiry)


# Session key holding the state of the OAuth2 flow the client started last
SESSION_STATE_KEY = "oauth_state"


def new_state() -> str:
    return secrets.token_urlsafe(24)


def remember_state(session: dict, provider: str, state: str):
    """
    Binds an issued state to the client's signed session cookie. Starting a
    new flow replaces any state still pending in the session.
    """
    session[SESSION_STATE_KEY] = {
        "state": state,
        "provider": provider,
        "issued_at": time.time(),
    }


def consume_state(session: dict, state: str, ttl_seconds: int, now=time.time) -> str:
    """
    Checks the state presented on the callback against the one stored in the
    session and returns the provider it was issued for. The stored state is
    removed whether or not it matches.
    """
    entry = session.pop(SESSION_STATE_KEY, None)
    if not state or not isinstance(entry, dict):
        logging.warning("Rejected an OAuth2 callback without a pending state in the session.")
        raise InvalidStateError()

    if not secrets.compare_digest(str(entry.get("state", "")), state):
        logging.warning("Rejected an OAuth2 callback whose state does not match the session.")
        raise InvalidStateError()

    provider = entry.get("provider", "")
    if now() - float(entry.get("issued_at", 0)) > ttl_seconds:
        logging.warning(f"Rejected an expired OAuth2 state for provider '{provider}'.")
        raise InvalidStateError()
    return provider
