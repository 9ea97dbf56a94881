# api.py
import logging
import tempfile
from typing import BinaryIO, Iterator, NamedTuple, Optional

from fastapi import APIRouter, Cookie, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response, StreamingResponse
from starlette.background import BackgroundTask

from .config import Settings
from .exceptions import InvalidStateError, NotAuthenticatedError
from .oauth import consume_state, new_state, remember_state
from .providers import ProviderRegistry
from .storage.base import StorageClient
from .storage.dto import AuthURLResponse, BrowseResponse, PublishResponse, ValidateResponse

# Request bodies larger than this spill over from memory to a temporary file
UPLOAD_SPOOL_MAX_SIZE = 8 * 1024 * 1024

router = APIRouter()


class Session(NamedTuple):
    token: str
    client: StorageClient


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> ProviderRegistry:
    return request.app.state.registry


def get_session(
    token: Optional[str] = Cookie(None),
    provider: Optional[str] = Cookie(None),
    registry: ProviderRegistry = Depends(get_registry),
    settings: Settings = Depends(get_settings_dep),
) -> Session:
    """
    Reads the session cookie and picks the storage provider the session belongs to.
    The "provider" cookie is optional and falls back to the configured default.
    """
    if not token:
        raise NotAuthenticatedError()
    return Session(token=token, client=registry.get(provider or settings.DEFAULT_PROVIDER))


def iter_stream(stream: BinaryIO, chunk_size: int) -> Iterator[bytes]:
    """Yields the content of a stream in chunks and closes it when done."""
    try:
        while True:
            chunk = stream.read(chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        stream.close()


@router.get("/health")
def health():
    return {"status": "ok"}


@router.api_route("/files/{filepath:path}", methods=["PUT", "POST"])
async def upload(filepath: str, request: Request, session: Session = Depends(get_session)):
    """Streams the request body to the storage provider under the given path."""
    spool = tempfile.SpooledTemporaryFile(max_size=UPLOAD_SPOOL_MAX_SIZE)
    try:
        async for chunk in request.stream():
            # Blocking once the spool has rolled over to disk
            await run_in_threadpool(spool.write, chunk)
        spool.seek(0)
        await run_in_threadpool(session.client.add, session.token, spool, filepath)
    finally:
        spool.close()
    return Response(status_code=200)


@router.get("/files/{filepath:path}")
async def read(
    filepath: str,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings_dep),
):
    stream = await run_in_threadpool(session.client.read, session.token, filepath)
    if stream is None:
        return Response(status_code=200)

    return StreamingResponse(
        iter_stream(stream, settings.STREAM_CHUNK_SIZE),
        media_type="application/octet-stream",
        # Covers the case where the body is never iterated
        background=BackgroundTask(stream.close),
    )


@router.delete("/files/{filepath:path}")
async def delete(filepath: str, session: Session = Depends(get_session)):
    await run_in_threadpool(session.client.delete, session.token, filepath)
    return Response(status_code=200)


@router.get("/browse/{filepath:path}", response_model=BrowseResponse)
async def browse(filepath: str, session: Session = Depends(get_session)):
    """Returns the names of the entries in a directory."""
    names = await run_in_threadpool(session.client.browse, session.token, filepath)
    return BrowseResponse(file_list=names)


@router.post("/publish/{filepath:path}", response_model=PublishResponse)
async def publish(filepath: str, session: Session = Depends(get_session)):
    """Makes a file public and returns its sharing URL."""
    url = await run_in_threadpool(session.client.publish, session.token, filepath)
    return PublishResponse(url=url)


@router.get("/auth/{provider}", response_model=AuthURLResponse)
async def auth_url(
    provider: str,
    request: Request,
    registry: ProviderRegistry = Depends(get_registry),
):
    """
    Returns the OAuth2 authorization URL of a provider. The URL carries a
    fresh state, which is also stored in the caller's signed session cookie;
    the callback only succeeds for the client holding that cookie.
    """
    client = registry.get(provider)
    state = new_state()
    url = await run_in_threadpool(client.auth_url, state)
    remember_state(request.session, provider, state)
    return AuthURLResponse(url=url)


@router.api_route(
    "/oauth2/callback",
    methods=["GET", "POST"],
    response_model=ValidateResponse,
    response_model_exclude_none=True,
)
async def validate(
    request: Request,
    registry: ProviderRegistry = Depends(get_registry),
    settings: Settings = Depends(get_settings_dep),
):
    """
    Exchanges the authorization code for an access token. The state must be
    the one the auth URL route stored in this client's session; it selects
    the provider.
    """
    params = dict(request.query_params)
    if request.method == "POST":
        form = await request.form()
        # Body values take precedence over the query string
        params.update({k: v for k, v in form.items() if isinstance(v, str)})

    provider = consume_state(
        request.session, params.get("state", ""), settings.OAUTH_STATE_TTL_SECONDS
    )
    if provider not in registry:
        logging.warning(f"OAuth2 state was issued for provider '{provider}', which is no longer registered.")
        raise InvalidStateError()

    client = registry.get(provider)
    token_info = await run_in_threadpool(client.validate, params.get("code", ""))
    logging.info(f"Exchanged an authorization code for provider '{provider}'.")
    return ValidateResponse(access_token=token_info.access_token, expiry=token_info.expiry)
