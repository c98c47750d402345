"""Application service and lifecycle helpers."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Callable

from gunpla_search.persistence.catalog_db import CatalogDB
from gunpla_search.app.api.search import CatalogSearchAPI
from gunpla_search.app.index.client import MeiliSearchClient
from gunpla_search.app.services.search_config import SearchConfig
from gunpla_search.settings import settings


logger = logging.getLogger(__name__)


class _DeferredRepository:
    """Forward attribute access to a repository that exists only after startup."""

    def __init__(self, resolve: Callable[[], Any]) -> None:
        self._resolve = resolve

    def __getattr__(self, name: str) -> Any:
        return getattr(self._resolve(), name)


@dataclass(slots=True)
class AppServices:
    """Bundle long-lived application services."""

    db: CatalogDB
    index_client: MeiliSearchClient
    search_config: SearchConfig
    search_api: CatalogSearchAPI

    @classmethod
    def create(cls) -> "AppServices":
        db = CatalogDB()
        search_config = SearchConfig.from_settings(settings)
        index_client = MeiliSearchClient.from_settings(settings)
        search_api = CatalogSearchAPI(
            index_client,
            _DeferredRepository(lambda: db.taxonomy),
            _DeferredRepository(lambda: db.catalog),
            config=search_config,
        )
        return cls(
            db=db,
            index_client=index_client,
            search_config=search_config,
            search_api=search_api,
        )


class AppLifecycle:
    """Manage startup and shutdown of long-lived application services."""

    def __init__(self, services: AppServices) -> None:
        self._services = services
        self._lock = asyncio.Lock()
        self._started = False

    async def __aenter__(self) -> "AppLifecycle":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def start(self) -> None:
        async with self._lock:
            if self._started:
                return

            logger.debug("Starting application lifecycle: db.init")
            try:
                await self._services.db.init()
            except Exception:
                logger.debug(
                    "Startup failed; closing index client", exc_info=True
                )
                with suppress(Exception):
                    await self._services.index_client.aclose()
                raise

            self._started = True
            logger.info("Application lifecycle started")

    async def stop(self) -> None:
        async with self._lock:
            if not self._started:
                return
            self._started = False

        logger.debug("Stopping application lifecycle: index_client.aclose -> db.close")
        errors: list[Exception] = []

        try:
            await self._services.index_client.aclose()
        except Exception as exc:
            logger.exception("Failed to close search index client cleanly")
            errors.append(exc)

        try:
            await self._services.db.close()
        except Exception as exc:
            logger.exception("Failed to close database cleanly")
            errors.append(exc)

        if errors:
            raise errors[0]

        logger.info("Application lifecycle stopped")

    @property
    def services(self) -> AppServices:
        return self._services


def get_services() -> AppServices:
    """Return the :class:`AppServices` container bound to the running app."""

    from quart import current_app

    services = current_app.extensions.get("gunpla_search")
    if services is None:
        raise RuntimeError("App services container is not initialised")
    return services


def get_search_api() -> CatalogSearchAPI:
    """Convenience accessor for the catalog search API."""

    return get_services().search_api
