"""
Unit tests for stream context options.

Tests each option-building step and the StreamContext object.
"""

import copy

import pytest

from stream_transport.context import (
    StreamContext,
    add_body_options,
    add_proxy_options,
    add_ssl_options,
    create_default_options,
    merge_context_options,
    resolve_url,
)
from stream_transport.http_primitives import (
    PROXY,
    SSL_CA_INFO,
    SSL_VERIFY_PEER,
)


class TestDefaultOptions:
    """Test create_default_options."""

    def test_plain_get(self, make_request) -> None:
        """Test the defaults for a GET without headers."""
        request = make_request("GET", "http://x/y")
        assert create_default_options(request) == {
            "http": {
                "method": "GET",
                "header": [],
                "protocol_version": "1.0",
                "ignore_errors": True,
            }
        }

    def test_header_lines(self, make_request, sample_headers) -> None:
        """Test that request headers become header lines."""
        request = make_request(headers=sample_headers)
        options = create_default_options(request)
        assert options["http"]["header"] == request.header_lines()

    def test_header_list_is_not_shared(self, make_request) -> None:
        """Test that the options own their header list."""
        request = make_request(headers=[("Accept", "*/*")])
        options = create_default_options(request)
        options["http"]["header"].append("X-Extra: 1")
        assert request.headers == [("Accept", "*/*")]


class TestResolveUrl:
    """Test resolve_url."""

    def test_injects_credentials(self, make_request) -> None:
        """Test that both credentials are embedded."""
        request = make_request(url="http://example.com/a", username="user", password="pw")
        assert str(resolve_url(request)) == "http://user:pw@example.com/a"

    @pytest.mark.parametrize(
        "username,password",
        [(None, None), ("user", None), (None, "pw"), ("", "pw"), ("user", "")],
    )
    def test_missing_credentials_leave_url_unchanged(
        self, make_request, username, password
    ) -> None:
        """Test that a missing username or password leaves the URL as is."""
        request = make_request(url="http://example.com/a", username=username, password=password)
        assert resolve_url(request) == request.url

    def test_request_url_is_not_modified(self, make_request) -> None:
        """Test that resolving does not change the request."""
        request = make_request(url="http://example.com/a", username="user", password="pw")
        resolve_url(request)
        assert request.url.username is None


class TestSslOptions:
    """Test add_ssl_options."""

    def test_verify_peer_and_cafile(self, make_request) -> None:
        """Test copying peer verification and CA bundle."""
        request = make_request(
            url="https://example.com/",
            transport_options={SSL_VERIFY_PEER: True, SSL_CA_INFO: "/ca.pem"},
        )
        options = create_default_options(request)
        add_ssl_options(options, request)
        assert options["ssl"] == {"verify_peer": True, "cafile": "/ca.pem"}

    def test_truthy_verify_flag(self, make_request) -> None:
        """Test that any truthy flag becomes True."""
        request = make_request(
            url="https://example.com/", transport_options={SSL_VERIFY_PEER: 2}
        )
        options = create_default_options(request)
        add_ssl_options(options, request)
        assert options["ssl"]["verify_peer"] is True

    @pytest.mark.parametrize("flag", [False, 0, None])
    def test_falsy_verify_flag(self, make_request, flag) -> None:
        """Test that a falsy flag leaves verify_peer unset."""
        request = make_request(
            url="https://example.com/", transport_options={SSL_VERIFY_PEER: flag}
        )
        options = create_default_options(request)
        add_ssl_options(options, request)
        assert "ssl" not in options

    def test_empty_cafile(self, make_request) -> None:
        """Test that an empty CA path is ignored."""
        request = make_request(
            url="https://example.com/",
            transport_options={SSL_VERIFY_PEER: True, SSL_CA_INFO: ""},
        )
        options = create_default_options(request)
        add_ssl_options(options, request)
        assert options["ssl"] == {"verify_peer": True}


class TestBodyOptions:
    """Test add_body_options."""

    def test_body_content(self, make_request) -> None:
        """Test a raw body and its Content-Length line."""
        request = make_request("POST", body="abc")
        options = create_default_options(request)
        add_body_options(options, request)
        assert options["http"]["content"] == b"abc"
        assert "Content-Length: 3" in options["http"]["header"]

    def test_post_fields_take_precedence(self, make_request) -> None:
        """Test that post fields win over the body."""
        request = make_request("POST", body="body-data", post_fields={"a": "1"})
        options = create_default_options(request)
        add_body_options(options, request)
        assert options["http"]["content"] == b"a=1"
        assert options["http"]["header"][-1] == "Content-Length: 3"

    def test_empty_post_fields_fall_back_to_body(self, make_request) -> None:
        """Test that empty post fields do not hide the body."""
        request = make_request("POST", body="xyz", post_fields={})
        options = create_default_options(request)
        add_body_options(options, request)
        assert options["http"]["content"] == b"xyz"

    def test_byte_length_of_multibyte_content(self, make_request) -> None:
        """Test that Content-Length counts bytes, not characters."""
        request = make_request("POST", body="héllo")
        options = create_default_options(request)
        add_body_options(options, request)
        assert "Content-Length: 6" in options["http"]["header"]

    def test_empty_body(self, make_request) -> None:
        """Test that empty content gets no Content-Length line."""
        request = make_request("POST", body="")
        options = create_default_options(request)
        add_body_options(options, request)
        assert options["http"]["content"] == b""
        assert options["http"]["header"] == []

    def test_zero_body_is_not_empty(self, make_request) -> None:
        """Test that content "0" still gets a Content-Length line."""
        request = make_request("POST", body="0")
        options = create_default_options(request)
        add_body_options(options, request)
        assert "Content-Length: 1" in options["http"]["header"]

    def test_no_body(self, make_request) -> None:
        """Test that a request without body gets no content option."""
        request = make_request("GET")
        options = create_default_options(request)
        add_body_options(options, request)
        assert "content" not in options["http"]

    def test_existing_content_length_is_replaced(self, make_request) -> None:
        """Test that a stale Content-Length line is dropped."""
        request = make_request(
            "PUT",
            headers=[("Content-Length", "99"), ("Accept", "*/*")],
            body=b"12345",
        )
        options = create_default_options(request)
        add_body_options(options, request)
        assert options["http"]["header"] == ["Accept: */*", "Content-Length: 5"]


class TestProxyOptions:
    """Test add_proxy_options."""

    def test_proxy_set(self, make_request) -> None:
        """Test setting the top-level proxy option."""
        request = make_request(transport_options={PROXY: "tcp://proxy:8080"})
        options = create_default_options(request)
        add_proxy_options(options, request)
        assert options["proxy"] == "tcp://proxy:8080"

    def test_no_proxy(self, make_request) -> None:
        """Test that no proxy key is added without a proxy."""
        request = make_request()
        options = create_default_options(request)
        add_proxy_options(options, request)
        assert "proxy" not in options


class TestMergeContextOptions:
    """Test merge_context_options."""

    def test_override_wins(self, make_request) -> None:
        """Test that an override replaces the request-derived method."""
        options = create_default_options(make_request("GET"))
        merge_context_options(options, {"http": {"method": "PUT"}})
        assert options["http"]["method"] == "PUT"
        assert options["http"]["protocol_version"] == "1.0"

    def test_new_namespace(self, make_request) -> None:
        """Test merging a namespace that did not exist."""
        options = create_default_options(make_request())
        merge_context_options(options, {"ssl": {"verify_peer": False}})
        assert options["ssl"] == {"verify_peer": False}

    def test_scalar_override(self, make_request) -> None:
        """Test that a proxy override replaces the top-level entry."""
        request = make_request(transport_options={PROXY: "tcp://a:1"})
        options = create_default_options(request)
        add_proxy_options(options, request)
        merge_context_options(options, {"proxy": "tcp://b:2"})
        assert options["proxy"] == "tcp://b:2"

    @pytest.mark.parametrize("value", [None, "GET", 5, ["method"]])
    def test_non_mapping_namespace_is_ignored(self, make_request, value) -> None:
        """Test that a non-mapping value leaves a wrapper namespace intact."""
        options = create_default_options(make_request("POST"))
        merge_context_options(options, {"http": value, "ssl": value})

        assert options["http"]["method"] == "POST"
        assert options["http"]["protocol_version"] == "1.0"
        assert "ssl" not in options

    def test_idempotent(self, make_request) -> None:
        """Test that merging twice equals merging once."""
        overrides = {
            "http": {"method": "PATCH", "timeout": 5},
            "ssl": {"verify_peer": False},
            "proxy": "tcp://proxy:3128",
        }
        once = create_default_options(make_request())
        merge_context_options(once, overrides)

        twice = copy.deepcopy(once)
        merge_context_options(twice, overrides)

        assert once == twice


class TestStreamContext:
    """Test StreamContext class functionality."""

    def test_create_copies_options(self) -> None:
        """Test that later changes to the options do not leak in."""
        options = {"http": {"header": ["A: 1"]}}
        context = StreamContext.create(options)
        options["http"]["header"].append("B: 2")
        assert context.options == {"http": {"header": ["A: 1"]}}

    def test_get_option(self) -> None:
        """Test looking up options."""
        context = StreamContext.create({"http": {"method": "GET"}, "proxy": "tcp://p:1"})
        assert context.get_option("http", "method") == "GET"
        assert context.get_option("http", "timeout", 5) == 5
        assert context.get_option("ssl", "cafile") is None
        assert context.get_option("proxy", "anything", "d") == "d"

    def test_notify(self) -> None:
        """Test that notify calls the notification param."""
        events = []
        context = StreamContext.create(
            params={"notification": lambda event, details: events.append((event, details))}
        )
        context.notify("connect", host="example.com", port=80)
        assert events == [("connect", {"host": "example.com", "port": 80})]

    def test_notify_without_callback(self) -> None:
        """Test that notify is a no-op without a callback."""
        StreamContext.create().notify("connect")

    def test_immutability(self) -> None:
        """Test that StreamContext is frozen."""
        import dataclasses

        context = StreamContext.create()
        with pytest.raises(dataclasses.FrozenInstanceError):
            context.options = {}
