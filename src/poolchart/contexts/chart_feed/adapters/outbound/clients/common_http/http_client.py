from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol

import requests


@dataclass(frozen=True, slots=True)
class HttpResponse:
    status_code: int
    headers: Mapping[str, str]
    body: Any


class HttpClient(Protocol):
    def get_json(
        self,
        *,
        url: str,
        params: Mapping[str, Any],
        timeout_s: float,
    ) -> HttpResponse:
        ...


class RequestsHttpClient(HttpClient):
    """
    Minimal HTTP client for chart history reads.

    - requests.get(...) through a shared session
    - exactly one attempt: retry policy belongs to whoever calls the datafeed
    - returns JSON body as a python object
    - transport errors, non-200 statuses and invalid JSON raise `RuntimeError`
    """

    def __init__(self, session: requests.Session | None = None) -> None:
        self._session = session if session is not None else requests.Session()

    def get_json(
        self,
        *,
        url: str,
        params: Mapping[str, Any],
        timeout_s: float,
    ) -> HttpResponse:
        try:
            r = self._session.get(url, params=dict(params), timeout=timeout_s)
        except requests.RequestException as e:
            raise RuntimeError(f"HTTP transport error for {url} params={params}: {e}") from e

        headers = {str(k): str(v) for k, v in r.headers.items()}
        if r.status_code != 200:
            raise RuntimeError(f"HTTP {r.status_code} for {url} params={params} body={r.text[:500]}")  # noqa: E501

        try:
            body = r.json()
        except ValueError as e:
            raise RuntimeError(f"Invalid JSON from {url} params={params}: {r.text[:500]}") from e  # noqa: E501

        return HttpResponse(status_code=200, headers=headers, body=body)

    def close(self) -> None:
        self._session.close()
