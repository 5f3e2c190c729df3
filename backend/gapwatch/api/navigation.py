"""HTTP rendition of the navigation surface used by the search synchronizer."""

from __future__ import annotations

from collections.abc import Mapping
from urllib.parse import urlencode

from fastapi import Request


class RequestNavigation:
    """Location of the current request.

    ``replace`` records the new query string; the page endpoint turns it into
    a redirect, which replaces the browser's history entry instead of adding
    one.
    """

    def __init__(self, request: Request) -> None:
        self._path = request.url.path
        self._query_params = dict(request.query_params)
        self.replaced_query: dict[str, str] | None = None

    @property
    def path(self) -> str:
        return self._path

    @property
    def query_params(self) -> Mapping[str, str]:
        if self.replaced_query is not None:
            return self.replaced_query
        return self._query_params

    def replace(self, params: Mapping[str, str]) -> None:
        self.replaced_query = dict(params)

    @property
    def replaced_url(self) -> str | None:
        if self.replaced_query is None:
            return None
        return f"{self._path}?{urlencode(self.replaced_query)}"
