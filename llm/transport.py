"""HTTP transport primitives for chat-completion and search endpoints."""

import logging
import threading
from typing import Any, Dict, Iterator, Optional

import requests

from .errors import AnalysisCancelled, HttpError, ProtocolError, TransportError

logger = logging.getLogger(__name__)


class CancelToken:
    """
    Cooperative cancellation shared by every request of one analysis run.

    Cancelling closes tracked responses so that a blocked stream read
    returns promptly. Callers check `cancelled` at every suspension point.
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._resources = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self):
        """Cancel the run and close anything still open."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            resources, self._resources = self._resources, []

        for resource in resources:
            try:
                resource.close()
            except Exception as e:
                logger.debug(f"Error closing resource on cancel: {e}")

    def track(self, resource):
        """Register something with a close() method; closed at once if already cancelled."""
        with self._lock:
            if not self._event.is_set():
                self._resources.append(resource)
                return resource
        resource.close()
        raise AnalysisCancelled()

    def untrack(self, resource):
        with self._lock:
            if resource in self._resources:
                self._resources.remove(resource)

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise AnalysisCancelled()


def _headers(auth_token: Optional[str]) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if auth_token:
        headers["Authorization"] = f"Bearer {auth_token}"
    return headers


def _send(
    endpoint: str,
    body: Dict[str, Any],
    auth_token: Optional[str],
    cancel_token: Optional[CancelToken],
    timeout: float,
    stream: bool,
    error_cls=HttpError,
) -> requests.Response:
    if cancel_token:
        cancel_token.raise_if_cancelled()

    try:
        response = requests.post(
            endpoint,
            json=body,
            headers=_headers(auth_token),
            timeout=timeout,
            stream=stream,
        )
    except requests.exceptions.RequestException as e:
        if cancel_token and cancel_token.cancelled:
            raise AnalysisCancelled() from e
        logger.warning(f"Request to {endpoint} failed: {e}")
        raise TransportError(str(e)) from e

    if cancel_token and cancel_token.cancelled:
        response.close()
        raise AnalysisCancelled()

    if not response.ok:
        error_body = response.text
        response.close()
        logger.warning(f"{endpoint} returned status {response.status_code}")
        raise error_cls(response.status_code, error_body, response.reason)

    return response


def post_json(
    endpoint: str,
    body: Dict[str, Any],
    auth_token: Optional[str] = None,
    cancel_token: Optional[CancelToken] = None,
    timeout: float = 120,
    error_cls=HttpError,
) -> Any:
    """
    POST a JSON body and return the decoded JSON response.

    Raises:
        HttpError (or error_cls): non-2xx response, body captured verbatim
        TransportError: network failure
        ProtocolError: body is not JSON
        AnalysisCancelled: cancel_token was cancelled
    """
    # streamed so a cancel can close the response while the body is read
    response = _send(endpoint, body, auth_token, cancel_token, timeout, True, error_cls)
    if cancel_token:
        cancel_token.track(response)
    try:
        data = response.json()
    except ValueError as e:
        if cancel_token and cancel_token.cancelled:
            raise AnalysisCancelled() from e
        raise ProtocolError(f"Invalid JSON response from {endpoint}: {e}") from e
    except (requests.exceptions.RequestException, OSError, AttributeError) as e:
        if cancel_token and cancel_token.cancelled:
            raise AnalysisCancelled() from e
        raise TransportError(str(e)) from e
    finally:
        if cancel_token:
            cancel_token.untrack(response)
        response.close()

    if cancel_token:
        cancel_token.raise_if_cancelled()
    return data


def post_stream(
    endpoint: str,
    body: Dict[str, Any],
    auth_token: Optional[str] = None,
    cancel_token: Optional[CancelToken] = None,
    timeout: float = 120,
) -> Iterator[bytes]:
    """
    POST a JSON body and return an iterator over raw response bytes.

    The request is sent before this function returns, so a non-2xx status
    raises HttpError before the first byte is consumed.
    """
    response = _send(endpoint, body, auth_token, cancel_token, timeout, True)
    if cancel_token:
        cancel_token.track(response)
    return _iter_body(response, cancel_token)


def _iter_body(response: requests.Response, cancel_token: Optional[CancelToken]) -> Iterator[bytes]:
    try:
        for chunk in response.iter_content(chunk_size=None):
            if cancel_token and cancel_token.cancelled:
                raise AnalysisCancelled()
            if chunk:
                yield chunk
    except (requests.exceptions.RequestException, OSError, AttributeError, ValueError) as e:
        # closing the response mid-read surfaces as one of these
        if cancel_token and cancel_token.cancelled:
            raise AnalysisCancelled() from e
        raise TransportError(str(e)) from e
    finally:
        if cancel_token:
            cancel_token.untrack(response)
        response.close()
    if cancel_token:
        cancel_token.raise_if_cancelled()
