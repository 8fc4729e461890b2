"""Fetching data over HTTP."""

import http.client
import os
import shutil
import ssl
import urllib.error
import urllib.request


class DownloadError(Exception):
    """Raised when a download cannot be completed."""


def _open(url: str, insecure_skip_verify: bool, timeout: float | None):
    context = ssl.create_default_context()
    if insecure_skip_verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    kwargs = {"context": context}
    if timeout is not None:
        kwargs["timeout"] = timeout
    try:
        return urllib.request.urlopen(url, **kwargs)
    except urllib.error.HTTPError as err:
        # Any HTTP status counts as a response; its body is returned as is.
        return err
    except (urllib.error.URLError, ValueError, OSError, http.client.HTTPException) as err:
        raise DownloadError(f"failed to download {url}: {err}") from err


def http_get_data(url: str, insecure_skip_verify: bool = False, timeout: float | None = None) -> bytes:
    """Return the body fetched from url."""
    with _open(url, insecure_skip_verify, timeout) as response:
        try:
            return response.read()
        except (OSError, http.client.HTTPException) as err:
            raise DownloadError(f"failed to download {url}: {err}") from err


def http_get_file(
    url: str,
    local_filename: str,
    insecure_skip_verify: bool = False,
    timeout: float | None = None,
) -> None:
    """Save the body fetched from url to local_filename."""
    with _open(url, insecure_skip_verify, timeout) as response:
        try:
            out = open(local_filename, "wb")
        except OSError as err:
            raise DownloadError(f"failed to download {url}: {err}") from err
        try:
            with out:
                shutil.copyfileobj(response, out)
        except (OSError, http.client.HTTPException) as err:
            try:
                os.remove(local_filename)
            except OSError:
                pass
            raise DownloadError(f"failed to download {url}: {err}") from err