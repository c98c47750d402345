import logging
from pathlib import Path
from typing import Any, TypeVar, cast

import aiosqlite
from aiosqlitepool import SQLiteConnectionPool
from aiosqlitepool.protocols import Connection as SQLitePoolConnection

from gunpla_search.settings import settings
from gunpla_search.util import resolve_data_path

from gunpla_search.app.db.base import run_in_transaction
from gunpla_search.app.db.catalog import CatalogRepository
from gunpla_search.app.db.taxonomy import TaxonomyRepository


RepositoryT = TypeVar("RepositoryT")

SCHEMA_PATH = resolve_data_path(
    "sql/schema.sql",
    fallback_dir=Path(__file__).resolve().parents[1] / "sql",
)

logger = logging.getLogger(__name__)


class CatalogDB:
    """Facade around the catalog SQLite repositories with shared connection pooling."""

    def __init__(self, db_path: str | Path | None = None):
        raw_path = Path(db_path or settings.DATABASE.path)
        self.db_path = raw_path.expanduser().resolve(strict=False)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.pool: SQLiteConnectionPool | None = None
        self._taxonomy: TaxonomyRepository | None = None
        self._catalog: CatalogRepository | None = None

    async def __aenter__(self) -> "CatalogDB":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def init(self) -> None:
        if self.pool is not None:
            return

        is_new = not self.db_path.exists()
        acquisition_timeout = int(settings.DATABASE.pool_acquire_timeout)

        async def _connection_factory() -> SQLitePoolConnection:
            return cast(SQLitePoolConnection, await self._create_connection())

        pool = SQLiteConnectionPool(
            _connection_factory,
            pool_size=int(settings.DATABASE.pool_size),
            acquisition_timeout=acquisition_timeout,
        )
        self.pool = pool
        try:
            await self._ensure_schema(is_new)
            self._configure_repositories()
        except Exception:
            await pool.close()
            self.pool = None
            self._taxonomy = None
            self._catalog = None
            raise

    async def close(self) -> None:
        if self.pool is not None:
            try:
                await self.pool.close()
            finally:
                self.pool = None
        self._taxonomy = None
        self._catalog = None

    async def _create_connection(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(
            self.db_path, timeout=float(settings.DATABASE.timeout)
        )
        await conn.execute(
            f"PRAGMA busy_timeout = {int(settings.DATABASE.busy_timeout)}"
        )
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")
        await conn.execute("PRAGMA synchronous = NORMAL")
        await conn.execute("PRAGMA temp_store = MEMORY")
        conn.row_factory = aiosqlite.Row
        return conn

    async def _ensure_schema(self, is_new: bool) -> None:
        if is_new:
            logger.info("Creating new catalog database at %s", self.db_path)
        if not self.pool:
            raise RuntimeError("Connection pool not initialized")
        schema_sql = SCHEMA_PATH.read_text()
        async with self.pool.connection() as conn:
            await run_in_transaction(
                conn,
                conn.executescript,
                schema_sql,
            )

    def _configure_repositories(self) -> None:
        if not self.pool:
            raise RuntimeError("Connection pool not initialized")
        self._taxonomy = TaxonomyRepository(
            self.pool,
            cache_maxsize=int(settings.CACHE.taxonomy.maxsize),
            cache_ttl=int(settings.CACHE.taxonomy.ttl),
        )
        self._catalog = CatalogRepository(self.pool)

    def _require_repository(
        self, repository: RepositoryT | None, name: str
    ) -> RepositoryT:
        if repository is None:
            raise RuntimeError(
                f"{name} repository is not initialised; call init() before accessing it."
            )
        return repository

    @property
    def taxonomy(self) -> TaxonomyRepository:
        """Return the filter taxonomy repository.

        Raises a :class:`RuntimeError` when accessed before the database has been
        initialised so configuration errors are caught early.
        """

        return self._require_repository(self._taxonomy, "Taxonomy")

    @property
    def catalog(self) -> CatalogRepository:
        """Return the direct-database catalog search repository."""

        return self._require_repository(self._catalog, "Catalog")

    async def execute_script(self, script: str) -> None:
        """Run ``script`` in a single transaction (used for seeding and tests)."""

        if not self.pool:
            raise RuntimeError("Connection pool not initialized")
        async with self.pool.connection() as conn:
            await run_in_transaction(conn, conn.executescript, script)

    async def execute_many(self, sql: str, rows: list[tuple[Any, ...]]) -> None:
        if not self.pool:
            raise RuntimeError("Connection pool not initialized")
        async with self.pool.connection() as conn:
            await run_in_transaction(conn, conn.executemany, sql, rows)
