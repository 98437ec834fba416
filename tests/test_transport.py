"""Tests for HTTP transport primitives."""

import pytest
from unittest.mock import Mock, patch
import requests

from llm.errors import AnalysisCancelled, HttpError, ProtocolError, SearchError, TransportError
from llm.transport import CancelToken, post_json, post_stream


class TestPostJson:
    """Test non-streaming requests."""

    @patch('requests.post')
    def test_success(self, mock_post, make_http_response):
        """Test JSON body, bearer auth and decoded response."""
        mock_post.return_value = make_http_response(json_data={"ok": True})

        result = post_json("https://api.example.com/v1/chat/completions", {"a": 1}, "sk-test")

        assert result == {"ok": True}
        call_args = mock_post.call_args
        assert call_args[0][0] == "https://api.example.com/v1/chat/completions"
        assert call_args[1]["json"] == {"a": 1}
        assert call_args[1]["headers"]["Authorization"] == "Bearer sk-test"
        assert call_args[1]["stream"] is True
        mock_post.return_value.close.assert_called()

    @patch('requests.post')
    def test_no_auth_header_without_token(self, mock_post, make_http_response):
        """Test Authorization is omitted when no token is given."""
        mock_post.return_value = make_http_response(json_data={})

        post_json("https://api.example.com", {})

        assert "Authorization" not in mock_post.call_args[1]["headers"]

    @patch('requests.post')
    def test_http_error_captures_body(self, mock_post, make_http_response):
        """Test non-2xx raises HttpError with status and body verbatim."""
        mock_post.return_value = make_http_response(status_code=401, text='{"error":"bad key"}')

        with pytest.raises(HttpError) as exc_info:
            post_json("https://api.example.com", {})

        assert exc_info.value.status == 401
        assert exc_info.value.body == '{"error":"bad key"}'
        assert str(exc_info.value) == 'API Error 401: {"error":"bad key"}'

    @patch('requests.post')
    def test_custom_error_class(self, mock_post, make_http_response):
        """Test search calls surface SearchError."""
        mock_post.return_value = make_http_response(status_code=500, text="boom")

        with pytest.raises(SearchError) as exc_info:
            post_json("https://api.tavily.com/search", {}, error_cls=SearchError)

        assert "500" in str(exc_info.value)
        assert "boom" in str(exc_info.value)

    @patch('requests.post')
    def test_invalid_json_is_protocol_error(self, mock_post, make_http_response):
        """Test an undecodable body raises ProtocolError."""
        response = make_http_response()
        response.json.side_effect = ValueError("Expecting value")
        mock_post.return_value = response

        with pytest.raises(ProtocolError):
            post_json("https://api.example.com", {})

    @patch('requests.post')
    def test_network_failure(self, mock_post):
        """Test connection errors become TransportError."""
        mock_post.side_effect = requests.exceptions.ConnectionError("Connection refused")

        with pytest.raises(TransportError) as exc_info:
            post_json("https://api.example.com", {})

        assert "Connection refused" in str(exc_info.value)

    @patch('requests.post')
    def test_cancelled_before_send(self, mock_post):
        """Test no request is made with an already-cancelled token."""
        token = CancelToken()
        token.cancel()

        with pytest.raises(AnalysisCancelled):
            post_json("https://api.example.com", {}, cancel_token=token)

        mock_post.assert_not_called()

    @patch('requests.post')
    def test_cancelled_while_in_flight(self, mock_post, make_http_response):
        """Test a response arriving after cancel is discarded."""
        token = CancelToken()

        def respond(*args, **kwargs):
            token.cancel()
            return make_http_response(json_data={"late": True})

        mock_post.side_effect = respond

        with pytest.raises(AnalysisCancelled):
            post_json("https://api.example.com", {}, cancel_token=token)

    @patch('requests.post')
    def test_cancel_during_body_read(self, mock_post, make_http_response):
        """Test cancelling while the body downloads closes the response."""
        token = CancelToken()
        response = make_http_response()

        def read_body():
            token.cancel()
            raise requests.exceptions.ConnectionError("connection closed")

        response.json.side_effect = read_body
        mock_post.return_value = response

        with pytest.raises(AnalysisCancelled):
            post_json("https://api.example.com", {}, cancel_token=token)

        response.close.assert_called()

    @patch('requests.post')
    def test_body_read_failure(self, mock_post, make_http_response):
        """Test a dropped connection mid-body is a TransportError."""
        response = make_http_response()
        response.json.side_effect = requests.exceptions.ChunkedEncodingError("broken")
        mock_post.return_value = response

        with pytest.raises(TransportError):
            post_json("https://api.example.com", {}, cancel_token=CancelToken())


class TestPostStream:
    """Test streaming requests."""

    @patch('requests.post')
    def test_yields_chunks(self, mock_post, make_http_response):
        """Test raw bytes are yielded in arrival order."""
        mock_post.return_value = make_http_response(chunks=[b"one", b"", b"two"])

        chunks = list(post_stream("https://api.example.com", {"stream": True}, "sk"))

        assert chunks == [b"one", b"two"]
        assert mock_post.call_args[1]["stream"] is True
        mock_post.return_value.close.assert_called()

    @patch('requests.post')
    def test_error_before_first_byte(self, mock_post, make_http_response):
        """Test non-2xx fails when the request is made, not on iteration."""
        mock_post.return_value = make_http_response(status_code=429, text="rate limited")

        with pytest.raises(HttpError) as exc_info:
            post_stream("https://api.example.com", {})

        assert exc_info.value.status == 429

    @patch('requests.post')
    def test_cancel_closes_response(self, mock_post, make_http_response):
        """Test cancelling mid-stream closes the response and stops iteration."""
        token = CancelToken()
        response = make_http_response(chunks=[b"one", b"two"])
        mock_post.return_value = response

        chunks = post_stream("https://api.example.com", {}, cancel_token=token)
        assert next(chunks) == b"one"
        token.cancel()

        with pytest.raises(AnalysisCancelled):
            next(chunks)
        response.close.assert_called()


class TestCancelToken:
    """Test cancellation bookkeeping."""

    def test_cancel_closes_tracked_resources(self):
        """Test every tracked resource is closed exactly once."""
        token = CancelToken()
        resource = Mock()
        token.track(resource)

        token.cancel()
        token.cancel()

        assert token.cancelled is True
        resource.close.assert_called_once()

    def test_track_after_cancel(self):
        """Test tracking on a cancelled token closes at once and raises."""
        token = CancelToken()
        token.cancel()
        resource = Mock()

        with pytest.raises(AnalysisCancelled):
            token.track(resource)
        resource.close.assert_called_once()
