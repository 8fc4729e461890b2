import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from kclkit.download import DownloadError, http_get_data, http_get_file

PAYLOAD = b"schema Person:\n    name: str\n" * 100
NOT_FOUND_BODY = b"nothing here"


class _Handler(BaseHTTPRequestHandler):
    def do_GET(self):
        if self.path == "/data":
            body, status = PAYLOAD, 200
        else:
            body, status = NOT_FOUND_BODY, 404
        self.send_response(status)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, *args):
        pass


@pytest.fixture
def base_url():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()


def test_get_data_returns_body(base_url):
    assert http_get_data(base_url + "/data", False, 5) == PAYLOAD


def test_get_data_returns_body_of_error_status(base_url):
    assert http_get_data(base_url + "/missing", False, 5) == NOT_FOUND_BODY


def test_get_file_writes_body(base_url, tmp_path):
    target = tmp_path / "out.bin"
    http_get_file(base_url + "/data", str(target), False, 5)
    assert target.read_bytes() == PAYLOAD


def test_get_file_into_missing_directory_fails(base_url, tmp_path):
    target = tmp_path / "no" / "such" / "dir" / "out.bin"
    with pytest.raises(DownloadError) as info:
        http_get_file(base_url + "/data", str(target), False, 5)
    assert str(info.value).startswith("failed to download " + base_url + "/data")
    assert not target.exists()


def test_bad_url_raises_download_error():
    with pytest.raises(DownloadError) as info:
        http_get_data("not a url")
    assert str(info.value).startswith("failed to download not a url")