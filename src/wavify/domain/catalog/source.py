"""
Remote catalog source.

Defines the contract the entity cache consumes and an HTTP implementation
backed by requests. Blocking requests run in a worker thread and are raced
against the caller's CancelToken so an abandoned request resolves as
FetchCancelled immediately.
"""

import asyncio
from typing import Any, Awaitable, Dict, List, Optional, Protocol, TypeVar
from urllib.parse import urljoin

import requests
from loguru import logger

from .exceptions import AuthenticationError, FetchCancelled, SourceError

T = TypeVar("T")

RawRecords = List[Dict[str, Any]]


class CancelToken:
    """Cooperative cancellation handle shared between a caller and its requests."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise FetchCancelled("Request cancelled")


async def run_cancellable(
    awaitable: Awaitable[T], cancel_token: Optional[CancelToken] = None
) -> T:
    """Await awaitable, raising FetchCancelled as soon as cancel_token fires.

    Args:
        awaitable: The work to run
        cancel_token: Optional token; None means the work cannot be cancelled

    Returns:
        The awaitable's result

    Raises:
        FetchCancelled: If the token was cancelled before the work finished
    """
    if cancel_token is None:
        return await awaitable

    work = asyncio.ensure_future(awaitable)
    if cancel_token.cancelled:
        work.cancel()
        raise FetchCancelled("Request cancelled")

    waiter = asyncio.ensure_future(cancel_token.wait())
    try:
        done, _ = await asyncio.wait(
            {work, waiter}, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        waiter.cancel()
        if not work.done() and not cancel_token.cancelled:
            # Outer task cancelled while waiting
            work.cancel()

    if work in done:
        return work.result()

    work.cancel()
    raise FetchCancelled("Request cancelled")


class CatalogSource(Protocol):
    """Contract for the backend the cache wraps.

    List operations return raw backend-shaped records. Failures raise
    SourceError; cancellation raises FetchCancelled.
    """

    async def list_songs(self, cancel_token: Optional[CancelToken] = None) -> RawRecords: ...

    async def list_artists(self, cancel_token: Optional[CancelToken] = None) -> RawRecords: ...

    async def list_genres(self, cancel_token: Optional[CancelToken] = None) -> RawRecords: ...

    async def list_playlists(self, cancel_token: Optional[CancelToken] = None) -> RawRecords: ...

    async def list_recently_played(
        self, cancel_token: Optional[CancelToken] = None
    ) -> RawRecords: ...

    async def record_play(self, song_id: int) -> None: ...

    async def set_liked(self, song_id: int, liked: bool) -> None: ...

    async def set_favorite(self, artist_id: int, favorite: bool) -> None: ...


class HttpCatalogSource:
    """CatalogSource over the Wavify REST API.

    Sends the access token as a bearer header. A 401 triggers one token
    refresh and a single retry; if the refresh fails both tokens are dropped
    and AuthenticationError is raised.
    """

    REFRESH_PATH = "auth/token/refresh/"

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.session = session or requests.Session()
        self.session.headers.update(
            {"Content-Type": "application/json", "Accept": "application/json"}
        )

    def _url(self, path: str) -> str:
        return urljoin(self.base_url, path)

    def _auth_headers(self) -> Dict[str, str]:
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}

    def _refresh_access_token(self) -> Optional[str]:
        """Exchange the refresh token for a new access token.

        Returns:
            New access token, or None if refresh is impossible
        """
        if not self.refresh_token:
            return None

        try:
            response = self.session.post(
                self._url(self.REFRESH_PATH),
                json={"refresh": self.refresh_token},
                timeout=self.timeout,
            )
            response.raise_for_status()
            new_access = response.json().get("access")
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Token refresh failed: {e}")
            new_access = None

        if not new_access:
            self.access_token = None
            self.refresh_token = None
            return None

        self.access_token = new_access
        logger.info("Access token refreshed")
        return new_access

    def _send(self, method: str, path: str, payload: Optional[Dict[str, Any]]):
        return self.session.request(
            method,
            self._url(path),
            json=payload,
            headers=self._auth_headers(),
            timeout=self.timeout,
        )

    def request(
        self, method: str, path: str, payload: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Perform a blocking API request and return the decoded JSON body.

        Raises:
            AuthenticationError: 401 that could not be fixed by a token refresh
            SourceError: Network failure, error status or undecodable body
        """
        try:
            response = self._send(method, path, payload)
            if response.status_code == 401:
                if self._refresh_access_token():
                    response = self._send(method, path, payload)
                if response.status_code == 401:
                    raise AuthenticationError(
                        f"{method} {path} unauthorized", status_code=401
                    )
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise SourceError(f"{method} {path} failed: {e}", status_code=status) from e
        except requests.RequestException as e:
            raise SourceError(f"{method} {path} failed: {e}") from e

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise SourceError(f"{method} {path} returned invalid JSON") from e

    async def _call(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Any:
        return await run_cancellable(
            asyncio.to_thread(self.request, method, path, payload), cancel_token
        )

    async def list_songs(self, cancel_token: Optional[CancelToken] = None) -> RawRecords:
        return await self._call("GET", "songs/", cancel_token=cancel_token)

    async def list_artists(self, cancel_token: Optional[CancelToken] = None) -> RawRecords:
        return await self._call("GET", "artists/", cancel_token=cancel_token)

    async def list_genres(self, cancel_token: Optional[CancelToken] = None) -> RawRecords:
        return await self._call("GET", "genres/", cancel_token=cancel_token)

    async def list_playlists(
        self, cancel_token: Optional[CancelToken] = None
    ) -> RawRecords:
        return await self._call("GET", "playlists/", cancel_token=cancel_token)

    async def list_recently_played(
        self, cancel_token: Optional[CancelToken] = None
    ) -> RawRecords:
        return await self._call(
            "GET", "songs/recently-played/", cancel_token=cancel_token
        )

    async def record_play(self, song_id: int) -> None:
        await self._call("POST", f"songs/{song_id}/play/")

    async def set_liked(self, song_id: int, liked: bool) -> None:
        await self._call("PATCH", f"songs/{song_id}/", {"is_liked": liked})

    async def set_favorite(self, artist_id: int, favorite: bool) -> None:
        # Singular "artist/" is the backend's route for artist updates
        await self._call("PATCH", f"artist/{artist_id}/", {"is_favorite": favorite})

    def close(self) -> None:
        self.session.close()
