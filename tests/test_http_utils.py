# -*- coding: utf-8 -*-
"""Tests pour le client HTTP partagé (src/http_utils.py)."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock, patch

import pytest
import requests

from config.settings import NetworkConfig
from src.http_utils import HttpClientMixin, build_session, pick_number


class _Client(HttpClientMixin):
    def __init__(self) -> None:
        self.network = NetworkConfig(request_timeout=2)
        self.logger = logging.getLogger("test.http")


class TestBuildSession:

    def test_retry_policy_mounted(self):
        session = build_session(NetworkConfig(max_retries=2))
        adapter = session.get_adapter("https://geo.api.gouv.fr")
        assert adapter.max_retries.total == 2
        assert 503 in adapter.max_retries.status_forcelist

    def test_accepts_json(self):
        session = build_session(NetworkConfig())
        assert session.headers["Accept"] == "application/json"


class TestFetchJson:
    """fetch_json ne lève jamais d'exception."""

    def test_session_is_lazy_and_reused(self):
        client = _Client()
        assert client._session is None
        assert client.session is client.session

    def test_returns_parsed_json(self, mock_response):
        client = _Client()
        mock_response.json.return_value = {"results": []}
        with patch.object(requests.Session, "get", return_value=mock_response) as mock_get:
            assert client.fetch_json("https://x.test", params={"a": 1}) == {"results": []}
        mock_get.assert_called_once_with("https://x.test", params={"a": 1}, timeout=2)

    def test_http_error_returns_none(self, mock_response, caplog):
        client = _Client()
        mock_response.ok = False
        mock_response.status_code = 500
        with patch.object(requests.Session, "get", return_value=mock_response):
            with caplog.at_level(logging.DEBUG, logger="test.http"):
                assert client.fetch_json("https://x.test") is None
        assert any(
            "[API ERROR]" in r.getMessage() and r.levelno == logging.WARNING
            for r in caplog.records
        )

    def test_quiet_status_logged_at_debug(self, mock_response, caplog):
        client = _Client()
        mock_response.ok = False
        mock_response.status_code = 403
        with patch.object(requests.Session, "get", return_value=mock_response):
            with caplog.at_level(logging.DEBUG, logger="test.http"):
                assert client.fetch_json("https://x.test", quiet_statuses=(403,)) is None
        errors = [r for r in caplog.records if "[API ERROR]" in r.getMessage()]
        assert errors and all(r.levelno == logging.DEBUG for r in errors)

    def test_network_error_returns_none(self):
        client = _Client()
        with patch.object(
            requests.Session, "get", side_effect=requests.ConnectionError("dns")
        ):
            assert client.fetch_json("https://x.test") is None

    def test_non_json_body_returns_none(self, mock_response):
        client = _Client()
        mock_response.json.side_effect = ValueError("not json")
        mock_response.text = "<html>"
        with patch.object(requests.Session, "get", return_value=mock_response):
            assert client.fetch_json("https://x.test") is None


class TestPickNumber:

    @pytest.mark.parametrize("raw, expected", [
        (12, 12.0),
        ("12.5", 12.5),
        (0, 0.0),
    ])
    def test_numbers(self, raw, expected):
        assert pick_number(raw) == expected

    @pytest.mark.parametrize("raw", [None, "n/a", True, float("nan"), float("inf"), {}])
    def test_not_numbers(self, raw):
        assert pick_number(raw) is None
