"""
Schema Browser Service.

Fetches and caches schema metadata per connection, tracks the active
schema/table pair and serves bounded table previews.

Schemas come from the gateway's table listing for the connection's selected
database, grouped into one schema named after the database. The local demo
connection gets the demo catalog instead. Previews are fetched on demand
and never cached.
"""

from typing import Any, Dict, List, Optional

from ..config import PreviewConfig
from ..domain.errors import GatewayError
from ..domain.schema_nodes import (
    SchemaFetchResult,
    SchemaNode,
    TableNode,
    TablePreview,
    TablePreviewResult,
    TableSelection,
)
from ..repositories.connection_registry import ConnectionRegistry
from ..repositories.connectivity import ConnectivityChecker
from ..repositories.demo_catalog import demo_schemas
from ..repositories.schema_cache import SchemaCache
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id
from .notification_service import NotificationCenter


logger = get_module_logger()


def records_to_preview(
    records: List[Dict[str, Any]],
    schema_name: Optional[str],
    table_name: str,
    limit: int,
) -> TablePreview:
    """
    Convert gateway records to a TablePreview holding at most ``limit`` rows.

    Columns are the union of record keys in first-seen order.
    """
    columns: List[str] = []
    for record in records:
        for key in record:
            if key not in columns:
                columns.append(key)

    kept = records[:limit]
    return TablePreview(
        schema_name=schema_name,
        table_name=table_name,
        columns=columns,
        rows=[[record.get(column) for column in columns] for record in kept],
        row_count=len(kept),
        truncated=len(records) > limit,
    )


class SchemaBrowserService:
    """
    Service for schema browsing and table previews.

    Usage:
        browser = SchemaBrowserService(registry, checker, SchemaCache(), notifications)
        result = await browser.fetch_schemas("conn-1")
        browser.select_table("public", "customers")
        preview = await browser.preview_table("conn-1", "public", "customers")
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        checker: ConnectivityChecker,
        cache: SchemaCache,
        notifications: NotificationCenter,
        config: Optional[PreviewConfig] = None,
    ):
        self.registry = registry
        self.checker = checker
        self.cache = cache
        self.notifications = notifications
        self.config = config or PreviewConfig()
        self.selection: Optional[TableSelection] = None

        logger.info("SchemaBrowserService initialized", row_limit=self.config.row_limit)

    # -------------------------------------------------------------------------
    # Schemas
    # -------------------------------------------------------------------------

    async def fetch_schemas(self, connection_id: str) -> SchemaFetchResult:
        """
        Fetch the schemas of a connection and replace its cache entry.

        Raises:
            NotFoundError: Unknown connection
            ValidationError: The connection has no selected database
        """
        connection = self.registry.require(connection_id)
        credential = connection.credential
        credential.require_host()
        credential.require_database()

        generation = self.cache.begin_fetch(connection_id)
        trace_id = current_trace_id()
        logger.info(
            "Fetching schemas",
            connection_id=connection_id,
            database=credential.database,
            generation=generation,
            trace_id=trace_id,
        )

        try:
            listing = await self.checker.list_tables(credential)
        except Exception as e:
            logger.error(
                "Unexpected error fetching schemas",
                connection_id=connection_id,
                error_type=type(e).__name__,
                trace_id=trace_id,
                exc_info=True,
            )
            message = "Could not retrieve database schema information."
            self.notifications.failure("Error fetching database schemas", message)
            return SchemaFetchResult(success=False, message=message, schemas=self.cache.get(connection_id))

        if not listing.success:
            self.notifications.failure("Error fetching database schemas", listing.message)
            return SchemaFetchResult(success=False, message=listing.message, schemas=self.cache.get(connection_id))

        if listing.simulated:
            schemas = demo_schemas()
        else:
            database = credential.database or ""
            schemas = [
                SchemaNode(
                    name=database,
                    tables=[TableNode(name=table, schema_name=database) for table in listing.tables],
                )
            ]

        if not self.cache.store(connection_id, generation, schemas):
            return SchemaFetchResult(
                success=True,
                message="A newer schema fetch already completed",
                schemas=self.cache.get(connection_id),
                stale=True,
            )

        if connection_id in self.registry:
            self.registry.update(connection_id, tables=list(listing.tables))

        table_count = sum(len(schema.tables) for schema in schemas)
        return SchemaFetchResult(
            success=True,
            message=f"Loaded {table_count} tables from {credential.database}",
            schemas=schemas,
        )

    def get_schemas(self, connection_id: str) -> List[SchemaNode]:
        return self.cache.get(connection_id)

    def forget(self, connection_id: str) -> bool:
        """Drop cached schemas. The table selection is not tied to a connection and is kept."""
        return self.cache.forget(connection_id)

    def known_columns(self, connection_id: Optional[str], schema_name: str, table_name: str) -> Optional[List[str]]:
        """Column names of a cached table, or None when they are not known."""
        if connection_id is None:
            return None
        table = self.cache.find_table(connection_id, schema_name, table_name)
        if table is None or not table.columns:
            return None
        return table.column_names

    # -------------------------------------------------------------------------
    # Table selection
    # -------------------------------------------------------------------------

    def select_table(self, schema_name: str, table_name: str) -> TableSelection:
        """Set the active pair. The pair is not checked against the cache."""
        self.selection = TableSelection(schema_name=schema_name, table_name=table_name)
        logger.info("Table selected", table=self.selection.qualified_name, trace_id=current_trace_id())
        return self.selection

    def clear_selection(self) -> None:
        self.selection = None

    # -------------------------------------------------------------------------
    # Previews
    # -------------------------------------------------------------------------

    async def preview_table(
        self,
        connection_id: str,
        schema_name: str,
        table_name: str,
        limit: Optional[int] = None,
    ) -> TablePreviewResult:
        """
        Fetch a bounded preview (default: preview.row_limit rows).

        Raises:
            NotFoundError: Unknown connection
            ValidationError: The connection has no host
        """
        return await self._fetch_rows(
            connection_id,
            schema_name,
            table_name,
            limit or self.config.row_limit,
            failure_title="Error fetching table preview",
        )

    async def fetch_sample_data(
        self,
        connection_id: str,
        schema_name: str,
        table_name: str,
        limit: Optional[int] = None,
    ) -> TablePreviewResult:
        """Fetch a small sample (default: preview.sample_row_limit rows)."""
        return await self._fetch_rows(
            connection_id,
            schema_name,
            table_name,
            limit or self.config.sample_row_limit,
            failure_title="Error fetching sample data",
        )

    async def _fetch_rows(
        self,
        connection_id: str,
        schema_name: str,
        table_name: str,
        limit: int,
        failure_title: str,
    ) -> TablePreviewResult:
        connection = self.registry.require(connection_id)
        connection.credential.require_host()
        trace_id = current_trace_id()

        try:
            records, simulated = await self.checker.fetch_preview_records(connection.credential, table_name)
        except GatewayError as e:
            message = f"Unable to fetch table preview: {e.message}"
            self.notifications.failure(failure_title, message)
            return TablePreviewResult(success=False, message=message)
        except Exception as e:
            logger.error(
                "Unexpected error fetching table rows",
                connection_id=connection_id,
                table=table_name,
                error_type=type(e).__name__,
                trace_id=trace_id,
                exc_info=True,
            )
            message = "Could not retrieve sample data from the table."
            self.notifications.failure(failure_title, message)
            return TablePreviewResult(success=False, message=message)

        preview = records_to_preview(records, schema_name, table_name, limit)
        logger.info(
            "Table rows fetched",
            connection_id=connection_id,
            table=f"{schema_name}.{table_name}",
            rows=preview.row_count,
            truncated=preview.truncated,
            simulated=simulated,
            trace_id=trace_id,
        )
        return TablePreviewResult(
            success=True,
            message=f"Fetched {preview.row_count} rows from {schema_name}.{table_name}",
            preview=preview,
        )
