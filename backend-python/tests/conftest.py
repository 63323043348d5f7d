"""
Shared helpers for the audit tests.

Network traffic goes through ``httpx.MockTransport`` backed by a ``FakeSite``
that maps absolute URLs to canned responses and records every request.
"""

import asyncio
import itertools

import httpx
import pytest

from page_audit.auditor import run_audit

TARGET = "https://example.com/"


def down(request):
    raise httpx.ConnectError("connection refused", request=request)


class FakeSite:
    """URL -> status int, (status, text, headers) tuple, or callable(request)."""

    def __init__(self, pages=None, default_status=404):
        self.pages = dict(pages or {})
        self.default_status = default_status
        self.calls = []

    def __call__(self, request):
        url = str(request.url)
        self.calls.append((request.method, url))
        spec = self.pages.get(url, self.default_status)
        if callable(spec):
            return spec(request)
        if isinstance(spec, int):
            return httpx.Response(spec, request=request)
        status, text, headers = spec
        return httpx.Response(status, text=text, headers=headers, request=request)

    def requested(self, method=None):
        return [u for m, u in self.calls if method is None or m == method]


def fake_clock(*ticks):
    it = itertools.chain(ticks, itertools.repeat(ticks[-1]))
    return lambda: next(it)


def audit(site, url=TARGET, **kwargs):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(site)) as client:
            return await run_audit(url, client=client, **kwargs)
    return asyncio.run(go())


def html_page(body, head=""):
    return f"<html><head>{head}</head><body>{body}</body></html>"


@pytest.fixture
def site():
    return FakeSite()
