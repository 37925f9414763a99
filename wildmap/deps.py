# ABOUTME: Dependency container for the explorer using Pydantic BaseModel.
# ABOUTME: Holds the httpx.AsyncClient, annotation store, and settings shared by the web app.

import httpx
from pydantic import BaseModel, ConfigDict

from wildmap.config import Settings
from wildmap.store import AnnotationStore


class ExplorerDeps(BaseModel):
    """Dependencies injected into the web app and explorer handlers."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    settings: Settings
    http_client: httpx.AsyncClient
    store: AnnotationStore


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Create an httpx client with a request timeout and an identifying User-Agent.

    Failed requests are not retried; the triggering action reports the error instead.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout),
        headers={"User-Agent": settings.user_agent},
    )


def create_deps(settings: Settings) -> ExplorerDeps:
    return ExplorerDeps(
        settings=settings,
        http_client=create_http_client(settings),
        store=AnnotationStore(settings.data_dir),
    )
