"""Tests for health check endpoints."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from s3_broker.health import create_combined_wsgi_app


def make_environ(path):
    return {
        "REQUEST_METHOD": "GET",
        "PATH_INFO": path,
        "SCRIPT_NAME": "",
        "SERVER_NAME": "localhost",
        "SERVER_PORT": "3000",
        "wsgi.url_scheme": "http",
    }


class TestCombinedWsgiApp:
    """Test cases for create_combined_wsgi_app."""

    def test_healthz(self):
        """Test /healthz answers without touching the broker."""
        broker_app = MagicMock()
        app = create_combined_wsgi_app(broker_app)
        start_response = MagicMock()

        result = app(make_environ("/healthz"), start_response)

        assert b'"status":"ok"' in b"".join(result)
        assert "200" in start_response.call_args[0][0]
        broker_app.assert_not_called()

    def test_readyz_ready(self):
        """Test /readyz reports ready when the check passes."""
        app = create_combined_wsgi_app(MagicMock(), ready_check=lambda: True)
        start_response = MagicMock()

        result = app(make_environ("/readyz"), start_response)

        assert b'"status":"ready"' in b"".join(result)
        assert "200" in start_response.call_args[0][0]

    def test_readyz_not_ready(self):
        """Test /readyz reports 503 when the check fails."""
        app = create_combined_wsgi_app(MagicMock(), ready_check=lambda: False)
        start_response = MagicMock()

        result = app(make_environ("/readyz"), start_response)

        assert b'"status":"not ready"' in b"".join(result)
        assert "503" in start_response.call_args[0][0]

    def test_readyz_without_check(self):
        """Test /readyz is ready when no check is configured."""
        app = create_combined_wsgi_app(MagicMock())
        start_response = MagicMock()

        app(make_environ("/readyz"), start_response)

        assert "200" in start_response.call_args[0][0]

    def test_content_type_is_json(self):
        """Test health responses are JSON."""
        app = create_combined_wsgi_app(MagicMock())
        start_response = MagicMock()

        app(make_environ("/healthz"), start_response)

        headers = dict(start_response.call_args[0][1])
        assert headers["Content-Type"].startswith("application/json")

    @patch("s3_broker.health.make_wsgi_app")
    def test_delegates_to_metrics(self, mock_make_wsgi):
        """Test /metrics is served by prometheus_client."""
        metrics_app = MagicMock(return_value=[b"metrics"])
        mock_make_wsgi.return_value = metrics_app
        app = create_combined_wsgi_app(MagicMock())
        environ = make_environ("/metrics")
        start_response = MagicMock()

        result = app(environ, start_response)

        metrics_app.assert_called_once_with(environ, start_response)
        assert result == [b"metrics"]

    def test_delegates_to_broker(self):
        """Test every other path goes to the broker app."""
        broker_app = MagicMock(return_value=[b"{}"])
        app = create_combined_wsgi_app(broker_app)
        environ = make_environ("/v2/catalog")
        start_response = MagicMock()

        result = app(environ, start_response)

        broker_app.assert_called_once_with(environ, start_response)
        assert result == [b"{}"]
