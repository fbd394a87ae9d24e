"""
Tests for NetworkService.

Covers:
- Connectivity probe gating the request
- URL, query and body construction
- Transport, empty-body and decode failures
- Completion delivery and cancellation
"""
import threading
import time
from unittest.mock import MagicMock

import pytest
import requests

from core.network.api import APICollection, HTTPMethod
from core.network.errors import (
    DecodingError,
    EncodingError,
    InvalidURLError,
    NetworkError,
    NoInternetError,
    UnknownError,
)
from core.network.network_service import NetworkService
from core.threading.manager import ThreadPoolType
from core.threading.operation import OperationQueue
from tests._qt_test_utils import fake_response, local_session


def _api(**overrides):
    fields = dict(name="items", base_url="https://api.example", path="/items",
                  query={"page": 0, "perPage": 10})
    fields.update(overrides)
    return APICollection(**fields)


def _run(service: NetworkService, thread_manager):
    queue = OperationQueue(thread_manager, ThreadPoolType.NETWORK)
    service.resume(queue)
    assert service.wait(timeout=5.0)


@pytest.fixture
def results():
    return []


def _service(api, session, monitor, results, decoder=lambda payload: payload):
    return NetworkService(api, decoder=decoder, completion=results.append,
                          path_monitor=monitor, session=session)


class TestConnectivity:

    def test_offline_reports_no_internet_without_http(self, thread_manager, offline_monitor, results):
        session = MagicMock()
        _run(_service(_api(), session, offline_monitor, results), thread_manager)

        assert len(results) == 1
        assert not results[0].success
        assert isinstance(results[0].error, NoInternetError)
        session.request.assert_not_called()

    def test_probe_called_once_per_request(self, thread_manager, online_monitor, results):
        session = MagicMock()
        session.request.return_value = fake_response(b'{"ok": true}')
        _run(_service(_api(), session, online_monitor, results), thread_manager)
        assert online_monitor.check_internet_connectivity.call_count == 1


class TestRequestBuilding:

    def test_get_with_query(self, thread_manager, online_monitor, results):
        session = MagicMock()
        session.request.return_value = fake_response(b'{"ok": true}')
        _run(_service(_api(), session, online_monitor, results), thread_manager)

        args, kwargs = session.request.call_args
        assert args == ("GET", "https://api.example/items")
        assert kwargs["params"] == {"page": 0, "perPage": 10}
        assert kwargs["data"] is None
        assert kwargs["stream"] is True
        assert results[0].success
        assert results[0].result == {"ok": True}

    def test_post_body_is_json_encoded(self, thread_manager, online_monitor, results):
        session = MagicMock()
        session.request.return_value = fake_response(b'{"id": 7}')
        api = _api(method=HTTPMethod.POST, body={"name": "x"}, query={})
        _run(_service(api, session, online_monitor, results), thread_manager)

        args, kwargs = session.request.call_args
        assert args[0] == "POST"
        assert kwargs["data"] == '{"name": "x"}'
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert kwargs["params"] is None

    def test_unencodable_body(self, thread_manager, online_monitor, results):
        session = MagicMock()
        api = _api(method=HTTPMethod.POST, body={"bad": object()})
        _run(_service(api, session, online_monitor, results), thread_manager)
        assert isinstance(results[0].error, EncodingError)
        session.request.assert_not_called()

    @pytest.mark.parametrize("base_url", ["not a url", "ftp://host", "https://"])
    def test_invalid_url(self, thread_manager, online_monitor, results, base_url):
        session = MagicMock()
        _run(_service(_api(base_url=base_url), session, online_monitor, results), thread_manager)
        assert isinstance(results[0].error, InvalidURLError)
        session.request.assert_not_called()


class TestFailures:

    def test_transport_error_wraps_cause(self, thread_manager, online_monitor, results):
        session = MagicMock()
        cause = requests.ConnectionError("reset")
        session.request.side_effect = cause
        _run(_service(_api(), session, online_monitor, results), thread_manager)

        assert isinstance(results[0].error, NetworkError)
        assert results[0].error.cause is cause

    def test_http_error_status_is_network_error(self, thread_manager, online_monitor, results):
        session = MagicMock()
        session.request.return_value = fake_response(status=500)
        _run(_service(_api(), session, online_monitor, results), thread_manager)
        assert isinstance(results[0].error, NetworkError)

    def test_empty_body_is_unknown(self, thread_manager, online_monitor, results):
        session = MagicMock()
        session.request.return_value = fake_response(b"")
        _run(_service(_api(), session, online_monitor, results), thread_manager)
        assert isinstance(results[0].error, UnknownError)

    def test_malformed_json_is_decoding_error(self, thread_manager, online_monitor, results):
        session = MagicMock()
        session.request.return_value = fake_response(b"{not json")
        _run(_service(_api(), session, online_monitor, results), thread_manager)
        assert isinstance(results[0].error, DecodingError)

    def test_decoder_key_error_is_decoding_error(self, thread_manager, online_monitor, results):
        session = MagicMock()
        session.request.return_value = fake_response(b'{"other": 1}')
        service = _service(_api(), session, online_monitor, results,
                           decoder=lambda payload: payload["wanted"])
        _run(service, thread_manager)
        assert isinstance(results[0].error, DecodingError)

    def test_completion_exception_still_finishes(self, thread_manager, online_monitor):
        session = MagicMock()
        session.request.return_value = fake_response(b'{"ok": true}')

        def bad_completion(_result):
            raise RuntimeError("consumer bug")

        service = NetworkService(_api(), decoder=lambda p: p, completion=bad_completion,
                                 path_monitor=online_monitor, session=session)
        _run(service, thread_manager)
        assert service.is_finished


class TestCancellation:

    def test_cancel_before_start_never_completes(self, thread_manager, online_monitor, results):
        session = MagicMock()
        service = _service(_api(), session, online_monitor, results)
        service.cancel()
        _run(service, thread_manager)

        assert results == []
        session.request.assert_not_called()

    def test_cancel_during_download_drops_result(self, thread_manager, online_monitor, results):
        session = MagicMock()
        first_chunk = threading.Event()
        release = threading.Event()

        def chunks(chunk_size=8192):
            yield b'{"ok":'
            first_chunk.set()
            release.wait(5.0)
            yield b' true}'

        resp = fake_response()
        resp.iter_content.side_effect = chunks
        session.request.return_value = resp

        service = _service(_api(), session, online_monitor, results)
        queue = OperationQueue(thread_manager, ThreadPoolType.NETWORK)
        service.resume(queue)
        assert first_chunk.wait(5.0)
        service.cancel()
        release.set()

        assert service.wait(timeout=5.0)
        assert results == []
        assert service.is_cancelled
        resp.close.assert_called()

    def test_owned_session_closed_on_cancel(self, online_monitor, results, monkeypatch):
        created = MagicMock()
        monkeypatch.setattr(requests, "Session", lambda: created)
        service = NetworkService(_api(), decoder=lambda p: p, completion=results.append,
                                 path_monitor=online_monitor)
        service.cancel()
        created.close.assert_called_once()

    def test_cancel_while_server_stalls_finishes_promptly(self, thread_manager, online_monitor,
                                                          results, stalling_server):
        server = stalling_server(lambda path: b'{"ok": true}')
        service = NetworkService(_api(base_url=server.url), decoder=lambda p: p,
                                 completion=results.append, path_monitor=online_monitor,
                                 session=local_session())
        queue = OperationQueue(thread_manager, ThreadPoolType.NETWORK)
        service.resume(queue)
        assert server.wait_for_requests(1)

        started = time.monotonic()
        service.cancel()
        assert service.wait(timeout=1.0)
        assert time.monotonic() - started < 1.0
        assert results == []
