"""Helpers shared by tests that wait on Qt-dispatched callbacks."""
import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Iterable, List, Optional
from unittest.mock import MagicMock

import requests

# Smallest valid PNG signature plus filler; only the header is checked.
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 32


def pump_until(app, predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Process Qt events until ``predicate()`` is true or ``timeout`` expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        app.processEvents()
        if predicate():
            return True
        time.sleep(0.005)
    app.processEvents()
    return predicate()


def fake_response(body: bytes = b"", status: int = 200,
                  chunks: Optional[Iterable[bytes]] = None) -> MagicMock:
    """A streamed requests.Response stand-in."""
    resp = MagicMock()
    resp.status_code = status
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    else:
        resp.raise_for_status.return_value = None
    parts = list(chunks) if chunks is not None else ([body] if body else [])
    resp.iter_content.side_effect = lambda chunk_size=8192: iter(parts)
    return resp


def feed_payload(slugs, page: int = 0, per_page: int = 10, total_pages: int = 3,
                 total_count: Optional[int] = None) -> dict:
    """JSON body of one home feeds page with one feed per design slug."""
    data = []
    for i, slug in enumerate(slugs):
        data.append({
            "title": f"Feed {page}-{i}",
            "designSlug": slug,
            "contents": [{
                "assets": [
                    {
                        "assetType": "IMAGE",
                        "sourceUrl": f"https://cdn.example/{page}/{i}/list.jpg",
                        "type": "thumbnail_list",
                        "sourcePath": f"/{page}/{i}/list.jpg",
                    },
                    {
                        "assetType": "IMAGE",
                        "sourceUrl": f"https://cdn.example/{page}/{i}/thumb.jpg",
                        "type": "thumbnail",
                        "sourcePath": f"/{page}/{i}/thumb.jpg",
                    },
                    {
                        "assetType": "VIDEO",
                        "sourceUrl": f"https://cdn.example/{page}/{i}/stream.m3u8",
                        "type": "hls",
                        "sourcePath": f"/{page}/{i}/stream.m3u8",
                    },
                ],
            }],
        })
    return {
        "data": data,
        "pagination": {
            "totalPages": total_pages,
            "currentPage": page,
            "perPage": per_page,
            "totalCount": total_pages * per_page if total_count is None else total_count,
        },
    }


def feed_body(slugs, **kwargs) -> bytes:
    return json.dumps(feed_payload(slugs, **kwargs)).encode()


class StallingServer:
    """Local HTTP server that holds back the headers of its first request.

    Later requests are answered at once with ``body_for(path)``. ``close``
    releases the stalled handler so blocked clients unwind.
    """

    def __init__(self, body_for: Callable[[str], bytes], stall: float = 4.0,
                 content_type: str = "application/json"):
        self.stall = stall
        self.release = threading.Event()
        self.paths: List[str] = []
        self._lock = threading.Lock()
        owner = self

        class _Handler(BaseHTTPRequestHandler):
            def do_GET(self):
                with owner._lock:
                    owner.paths.append(self.path)
                    first = len(owner.paths) == 1
                if first:
                    owner.release.wait(owner.stall)
                body = body_for(self.path)
                try:
                    self.send_response(200)
                    self.send_header("Content-Type", content_type)
                    self.send_header("Content-Length", str(len(body)))
                    self.end_headers()
                    self.wfile.write(body)
                except OSError:
                    pass

            def log_message(self, format, *args):
                pass

        self._server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
        self._server.daemon_threads = True
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

    @property
    def url(self) -> str:
        host, port = self._server.server_address[:2]
        return f"http://{host}:{port}"

    def request_count(self) -> int:
        with self._lock:
            return len(self.paths)

    def wait_for_requests(self, count: int, timeout: float = 5.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if self.request_count() >= count:
                return True
            time.sleep(0.01)
        return self.request_count() >= count

    def close(self) -> None:
        self.release.set()
        self._server.shutdown()
        self._server.server_close()


def local_session() -> requests.Session:
    """Session for StallingServer traffic; ignores proxy settings from the environment."""
    session = requests.Session()
    session.trust_env = False
    return session
