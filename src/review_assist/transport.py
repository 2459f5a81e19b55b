"""Shared httpx client handling for the service-facing adapters."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx


@asynccontextmanager
async def open_client(
    client: Optional[httpx.AsyncClient], timeout: float
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the caller's client, or a short-lived one closed on exit."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=timeout) as owned:
        yield owned


def join_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"
