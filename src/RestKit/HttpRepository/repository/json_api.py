"""Ready-to-use repository for JSON APIs with static headers and bearer tokens."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from ..network.transport import Transport
from ..url_builder import UrlBuilder
from .base import AbstractHttpRepository

TokenProvider = Callable[[], Awaitable[Optional[str]]]


class JsonApiRepository(AbstractHttpRepository):
    """Concrete repository whose lifecycle hook refreshes a bearer token.

    Args:
        transport: See :class:`AbstractHttpRepository`.
        base_url: Root used by :meth:`url`.
        headers: Static headers added to every request.
        token_provider: Awaited before every call; a non-empty result is sent
            as ``Authorization: Bearer <token>``.
        **kwargs: Forwarded to :class:`AbstractHttpRepository`.

    Example:
        >>> api = JsonApiRepository(base_url="https://api.example.com/v1")  # doctest: +SKIP
        >>> await api.get(api.url("users", 42), dict)  # doctest: +SKIP
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        *,
        base_url: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        token_provider: Optional[TokenProvider] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(transport, **kwargs)
        self.base_url = base_url
        self._headers: Dict[str, str] = dict(headers or {})
        self._token_provider = token_provider
        self._bearer: Optional[str] = None

    async def prepare_request(self) -> None:
        if self._token_provider is not None:
            self._bearer = await self._token_provider()

    def default_headers(self) -> Dict[str, str]:
        headers = dict(self._headers)
        if self._bearer:
            headers["Authorization"] = f"Bearer {self._bearer}"
        return headers

    def url(self, *segments: Any, **params: Any) -> UrlBuilder:
        """Builder rooted at ``base_url``."""

        if self.base_url is None:
            raise ValueError("JsonApiRepository.url() requires base_url")
        return UrlBuilder(self.base_url).path(*segments).query(**params)


__all__ = ["JsonApiRepository", "TokenProvider"]
