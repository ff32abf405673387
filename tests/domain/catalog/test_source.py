"""Tests for the HTTP catalog source and cancellation helpers."""

import asyncio
from unittest.mock import MagicMock

import pytest
import requests

from wavify.domain.catalog.exceptions import AuthenticationError, FetchCancelled, SourceError
from wavify.domain.catalog.source import CancelToken, HttpCatalogSource, run_cancellable

BASE_URL = "https://api.example/api/"


def make_response(status_code=200, payload=None, content=b"[]"):
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(
            f"{status_code} Error", response=response
        )
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def session():
    mock_session = MagicMock(spec=requests.Session)
    mock_session.headers = {}
    return mock_session


@pytest.fixture
def http_source(session) -> HttpCatalogSource:
    return HttpCatalogSource(
        BASE_URL, timeout=5, access_token="access-1", refresh_token="refresh-1", session=session
    )


class TestRequest:
    def test_get_sends_bearer_token(self, http_source, session):
        session.request.return_value = make_response(payload=[{"id": 1}])

        assert http_source.request("GET", "songs/") == [{"id": 1}]

        session.request.assert_called_once_with(
            "GET",
            "https://api.example/api/songs/",
            json=None,
            headers={"Authorization": "Bearer access-1"},
            timeout=5,
        )

    def test_base_url_gets_trailing_slash(self, session):
        source = HttpCatalogSource("https://api.example/api", session=session)
        assert source.base_url == BASE_URL

    def test_no_token_no_header(self, session):
        source = HttpCatalogSource(BASE_URL, session=session)
        session.request.return_value = make_response(payload=[])
        source.request("GET", "genres/")
        assert session.request.call_args.kwargs["headers"] == {}

    def test_empty_body_returns_none(self, http_source, session):
        session.request.return_value = make_response(status_code=204, content=b"")
        assert http_source.request("POST", "songs/1/play/") is None

    def test_http_error_carries_status(self, http_source, session):
        session.request.return_value = make_response(status_code=500)

        with pytest.raises(SourceError) as exc_info:
            http_source.request("GET", "songs/")

        assert exc_info.value.status_code == 500

    def test_connection_error(self, http_source, session):
        session.request.side_effect = requests.ConnectionError("offline")
        with pytest.raises(SourceError, match="offline"):
            http_source.request("GET", "songs/")

    def test_invalid_json(self, http_source, session):
        response = make_response(content=b"<html>")
        response.json.side_effect = ValueError("no json")
        session.request.return_value = response

        with pytest.raises(SourceError, match="invalid JSON"):
            http_source.request("GET", "songs/")


class TestTokenRefresh:
    def test_401_refreshes_and_retries(self, http_source, session):
        session.request.side_effect = [
            make_response(status_code=401),
            make_response(payload=[{"id": 1}]),
        ]
        session.post.return_value = make_response(payload={"access": "access-2"})

        assert http_source.request("GET", "songs/") == [{"id": 1}]

        session.post.assert_called_once_with(
            "https://api.example/api/auth/token/refresh/",
            json={"refresh": "refresh-1"},
            timeout=5,
        )
        assert http_source.access_token == "access-2"
        retry_headers = session.request.call_args_list[1].kwargs["headers"]
        assert retry_headers == {"Authorization": "Bearer access-2"}

    def test_failed_refresh_drops_tokens(self, http_source, session):
        session.request.return_value = make_response(status_code=401)
        session.post.return_value = make_response(status_code=401)

        with pytest.raises(AuthenticationError):
            http_source.request("GET", "songs/")

        assert http_source.access_token is None
        assert http_source.refresh_token is None
        assert session.request.call_count == 1

    def test_401_without_refresh_token(self, session):
        source = HttpCatalogSource(BASE_URL, access_token="stale", session=session)
        session.request.return_value = make_response(status_code=401)

        with pytest.raises(AuthenticationError) as exc_info:
            source.request("GET", "songs/")

        assert exc_info.value.status_code == 401
        session.post.assert_not_called()


class TestEndpoints:
    @pytest.mark.asyncio
    async def test_list_endpoints(self, http_source, session):
        session.request.return_value = make_response(payload=[])

        await http_source.list_songs()
        await http_source.list_artists()
        await http_source.list_genres()
        await http_source.list_playlists()
        await http_source.list_recently_played()

        urls = [call.args[1] for call in session.request.call_args_list]
        assert urls == [
            BASE_URL + "songs/",
            BASE_URL + "artists/",
            BASE_URL + "genres/",
            BASE_URL + "playlists/",
            BASE_URL + "songs/recently-played/",
        ]

    @pytest.mark.asyncio
    async def test_write_endpoints(self, http_source, session):
        session.request.return_value = make_response(payload={})

        await http_source.record_play(5)
        await http_source.set_liked(5, True)
        await http_source.set_favorite(2, False)

        calls = [
            (call.args[0], call.args[1], call.kwargs["json"])
            for call in session.request.call_args_list
        ]
        assert calls == [
            ("POST", BASE_URL + "songs/5/play/", None),
            ("PATCH", BASE_URL + "songs/5/", {"is_liked": True}),
            ("PATCH", BASE_URL + "artist/2/", {"is_favorite": False}),
        ]


class TestRunCancellable:
    @pytest.mark.asyncio
    async def test_without_token(self):
        async def work():
            return 42

        assert await run_cancellable(work()) == 42

    @pytest.mark.asyncio
    async def test_cancel_interrupts_pending_work(self):
        token = CancelToken()
        started = asyncio.Event()

        async def work():
            started.set()
            await asyncio.sleep(60)

        pending = asyncio.create_task(run_cancellable(work(), token))
        await started.wait()
        token.cancel()

        with pytest.raises(FetchCancelled):
            await pending

    @pytest.mark.asyncio
    async def test_completed_work_wins(self):
        token = CancelToken()

        async def work():
            return "done"

        assert await run_cancellable(work(), token) == "done"
        assert not token.cancelled

    def test_raise_if_cancelled(self):
        token = CancelToken()
        token.raise_if_cancelled()
        token.cancel()
        with pytest.raises(FetchCancelled):
            token.raise_if_cancelled()
