"""Unit tests for PageFetcher."""
from unittest.mock import patch

import pytest
import responses
from requests.exceptions import RequestException, Timeout, TooManyRedirects

from scraper.http_client import PageFetcher


URL = "https://marhaba.qa/events/"


class TestPageFetcher:
    """Test cases for PageFetcher class."""

    @responses.activate
    def test_fetch_page_sends_headers(self):
        """Test the client identifier and HTML accept header."""
        responses.add(responses.GET, URL, body="<html></html>", status=200)

        body = PageFetcher(backoff_seconds=0).fetch_page(URL)

        assert body == "<html></html>"
        request = responses.calls[0].request
        assert request.headers['User-Agent'] == "Mozilla/5.0 (compatible; DohaEventsBot/1.0)"
        assert request.headers['Accept'] == "text/html,application/xhtml+xml"

    @responses.activate
    def test_retry_success(self):
        """Test retry logic succeeds after initial failures."""
        responses.add(responses.GET, URL, body="Server Error", status=500)
        responses.add(responses.GET, URL, body="Server Error", status=500)
        responses.add(responses.GET, URL, body="ok", status=200)

        with patch('scraper.http_client.time.sleep') as mock_sleep:
            body = PageFetcher(max_retries=3).fetch_page(URL)

        assert body == "ok"
        assert len(responses.calls) == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1, 2]

    @responses.activate
    def test_all_retries_fail(self):
        """Test that the last exception is raised when all retries fail."""
        for _ in range(3):
            responses.add(responses.GET, URL, body="Server Error", status=500)

        with patch('scraper.http_client.time.sleep'), pytest.raises(RequestException):
            PageFetcher(max_retries=3).fetch_page(URL)

        assert len(responses.calls) == 3

    @responses.activate
    def test_timeout(self):
        """Test that a timed-out request is raised to the caller."""
        responses.add(responses.GET, URL, body=Timeout("Request timed out"))

        with pytest.raises(Timeout):
            PageFetcher(max_retries=1).fetch_page(URL)

    @responses.activate
    def test_at_most_one_redirect(self):
        """Test that a second redirect is refused."""
        responses.add(responses.GET, URL, status=301, headers={'Location': URL + "a/"})
        responses.add(responses.GET, URL + "a/", status=301, headers={'Location': URL + "b/"})
        responses.add(responses.GET, URL + "b/", body="too far", status=200)

        with pytest.raises(TooManyRedirects):
            PageFetcher(max_retries=1).fetch_page(URL)

    @responses.activate
    def test_fetch_json_invalid_body(self):
        """Test that a non-JSON body raises ValueError."""
        responses.add(responses.GET, URL, body="not json", status=200)

        with pytest.raises(ValueError):
            PageFetcher(max_retries=1).fetch_json(URL)
