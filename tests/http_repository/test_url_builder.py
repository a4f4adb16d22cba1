"""Tests for UrlBuilder."""

from __future__ import annotations

import pytest

from RestKit.HttpRepository import InvalidUrlError, UrlBuilder, UrlBuilderLike


class TestUrlBuilder:
    def test_path_and_query(self):
        url = UrlBuilder("https://api.example.com/v1").path("users", 42).query(expand="roles")

        assert url.build_url() == "https://api.example.com/v1/users/42?expand=roles"

    def test_trailing_slash_on_base(self):
        assert UrlBuilder("https://api.example.com/v1/").path("users").build_url() == (
            "https://api.example.com/v1/users"
        )

    def test_segments_are_percent_encoded(self):
        assert UrlBuilder("https://api.example.com/v1").path("a b").build_url() == (
            "https://api.example.com/v1/a%20b"
        )

    def test_query_formatting(self):
        url = UrlBuilder("https://api.example.com/v1").query(active=True, cursor=None, limit=5)

        assert url.build_url() == "https://api.example.com/v1?active=true&limit=5"

    def test_methods_return_new_builders(self):
        base = UrlBuilder("https://api.example.com")

        child = base.path("users")

        assert base.segments == ()
        assert child is not base

    @pytest.mark.parametrize("base", ["ftp://files.example.com", "/relative/path", "not a url"])
    def test_rejects_non_http_bases(self, base):
        with pytest.raises(InvalidUrlError):
            UrlBuilder(base).build_url()

    def test_satisfies_protocol(self):
        assert isinstance(UrlBuilder("https://api.example.com"), UrlBuilderLike)

    def test_custom_builders_are_accepted(self):
        class Fixed:
            def build_url(self) -> str:
                return "https://example.org/x"

        assert isinstance(Fixed(), UrlBuilderLike)
