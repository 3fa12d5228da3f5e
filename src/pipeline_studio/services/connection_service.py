"""
Connection Service for orchestrating connection operations.

Pipeline for test_connection():
1. Mark the connection pending
2. Run the connectivity check through the gateway
3. Stamp last_tested and move to connected / failed (error on an unexpected exception)
4. On success, fetch schemas in the background when a database is selected

Status state machine:
    pending -> connected | failed | error
    connected -> selected (database picked)
    any -> failed on a later failed test (the selected database is kept)

Error Handling:
- Gateway failures become {success: False, message} results plus a notice
- Unknown exceptions are logged with a traceback and reported generically
- Only NotFoundError / ValidationError (caller mistakes) are raised
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from ..domain.base_enums import ConnectionRole, ConnectionStatus, ExportFormat
from ..domain.connections import (
    Connection,
    ConnectionCheckResult,
    ConnectionDraft,
    DatabaseSelectionResult,
)
from ..domain.errors import ValidationError
from ..repositories.connection_registry import ConnectionRegistry
from ..repositories.connectivity import ConnectivityChecker
from ..utils.documents import dump_document
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id, trace_context
from .notification_service import NotificationCenter
from .schema_service import SchemaBrowserService


logger = get_module_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConnectionService:
    """
    Service for connection-related business logic.

    Usage:
        service = ConnectionService(registry, checker, schema_browser, notifications)
        connection_id = service.add_connection(draft)
        result = await service.test_connection(connection_id)
        await service.select_database_for_connection(connection_id, "airportdb")
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        checker: ConnectivityChecker,
        schema_browser: SchemaBrowserService,
        notifications: NotificationCenter,
    ):
        self.registry = registry
        self.checker = checker
        self.schema_browser = schema_browser
        self.notifications = notifications

        # Latest test issued per connection; older responses do not touch state
        self._test_generations: Dict[str, int] = {}
        self._background_tasks: Set[asyncio.Task] = set()

        logger.info("ConnectionService initialized")

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    def add_connection(self, draft: ConnectionDraft) -> str:
        """Register a connection (status=pending) and return its id."""
        return self.registry.add(draft).id

    def update_connection(self, connection_id: str, **changes: Any) -> Connection:
        return self.registry.update(connection_id, **changes)

    def remove_connection(self, connection_id: str) -> bool:
        """
        Remove a connection from the registry only.

        Cached schemas stay until forget_schemas() is called.
        """
        return self.registry.remove(connection_id)

    def forget_schemas(self, connection_id: str) -> bool:
        return self.schema_browser.forget(connection_id)

    def get_connection_by_id(self, connection_id: str) -> Optional[Connection]:
        return self.registry.get(connection_id)

    def list_connections(self, role: Optional[ConnectionRole] = None) -> List[Connection]:
        return self.registry.list(role)

    # -------------------------------------------------------------------------
    # Testing
    # -------------------------------------------------------------------------

    async def test_connection(self, connection_id: str) -> ConnectionCheckResult:
        """
        Test a connection and record the outcome.

        Returns:
            ConnectionCheckResult; never raises for gateway failures

        Raises:
            NotFoundError: Unknown connection
        """
        connection = self.registry.require(connection_id)
        generation = self._test_generations.get(connection_id, 0) + 1
        self._test_generations[connection_id] = generation
        trace_id = current_trace_id()

        self.registry.update(connection_id, status=ConnectionStatus.PENDING)
        logger.info("Testing connection", connection_id=connection_id, generation=generation, trace_id=trace_id)

        try:
            result = await self.checker.check(connection.credential)
        except Exception as e:
            logger.error(
                "Unexpected error testing connection",
                connection_id=connection_id,
                error_type=type(e).__name__,
                trace_id=trace_id,
                exc_info=True,
            )
            message = "An unexpected error occurred while testing the connection."
            if self._is_latest_test(connection_id, generation):
                self.registry.update(connection_id, status=ConnectionStatus.ERROR, last_tested=_utcnow())
            self.notifications.failure("Connection error", message)
            return ConnectionCheckResult(success=False, message=message)

        if not self._is_latest_test(connection_id, generation):
            logger.info(
                "Discarding superseded connection test",
                connection_id=connection_id,
                generation=generation,
                trace_id=trace_id,
            )
            return result

        current = self.registry.require(connection_id)
        if result.success:
            self.registry.update(
                connection_id,
                status=ConnectionStatus.CONNECTED,
                last_tested=_utcnow(),
                databases=list(result.databases),
            )
            self.notifications.success("Connection successful", result.message)
            if current.database:
                self._schedule_schema_fetch(connection_id)
        else:
            self.registry.update(connection_id, status=ConnectionStatus.FAILED, last_tested=_utcnow())
            self.notifications.failure("Connection failed", result.message)

        return result

    def _is_latest_test(self, connection_id: str, generation: int) -> bool:
        """True while the connection exists and no newer test was issued."""
        return connection_id in self.registry and self._test_generations.get(connection_id) == generation

    def _schedule_schema_fetch(self, connection_id: str) -> None:
        task = asyncio.create_task(self._background_schema_fetch(connection_id))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _background_schema_fetch(self, connection_id: str) -> None:
        """Schema fetch after a successful test; failures are logged, status is kept."""
        with trace_context() as trace_id:
            try:
                result = await self.schema_browser.fetch_schemas(connection_id)
            except Exception as e:
                logger.error(
                    "Background schema fetch failed",
                    connection_id=connection_id,
                    error_type=type(e).__name__,
                    error=str(e),
                    trace_id=trace_id,
                    exc_info=True,
                )
                return
            if not result.success:
                logger.warning(
                    "Background schema fetch unsuccessful",
                    connection_id=connection_id,
                    message=result.message,
                    trace_id=trace_id,
                )

    async def wait_for_background_tasks(self) -> None:
        """Wait for scheduled schema fetches (used on shutdown and in tests)."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    # -------------------------------------------------------------------------
    # Database selection
    # -------------------------------------------------------------------------

    async def list_databases(self, connection_id: str) -> List[str]:
        """
        Ask the gateway for the databases of a connection.

        Returns:
            Database names; an empty list when the check failed
        """
        connection = self.registry.require(connection_id)
        result = await self.checker.check(connection.credential)
        if not result.success:
            self.notifications.failure("Error fetching databases", result.message)
            return []
        self.registry.update(connection_id, databases=list(result.databases))
        return list(result.databases)

    async def select_database_for_connection(self, connection_id: str, database: str) -> DatabaseSelectionResult:
        """
        Set the connection's database and status=selected, then list its tables.

        A failed table listing does not roll the selection back; it produces
        a failure notice and a result with success=False.

        Raises:
            NotFoundError: Unknown connection
            ValidationError: Blank database name
        """
        if not database or not database.strip():
            raise ValidationError("Database name is required", details={"field": "database"})

        connection = self.registry.require(connection_id)
        updated = self.registry.update(
            connection_id,
            credential=connection.credential.with_database(database),
            status=ConnectionStatus.SELECTED,
            tables=[],
        )
        logger.info(
            "Database selected",
            connection_id=connection_id,
            database=database,
            trace_id=current_trace_id(),
        )

        try:
            result = await self.checker.list_tables(updated.credential)
        except Exception as e:
            logger.error(
                "Unexpected error listing tables",
                connection_id=connection_id,
                error_type=type(e).__name__,
                trace_id=current_trace_id(),
                exc_info=True,
            )
            message = "An unexpected error occurred while fetching tables."
            self.notifications.failure("Error fetching tables", message)
            return DatabaseSelectionResult(success=False, message=message, database=database)

        if not result.success:
            self.notifications.failure("Error fetching tables", result.message)
            return result

        if connection_id in self.registry:
            self.registry.update(connection_id, tables=list(result.tables))
        self.notifications.success("Database selected", result.message)
        return result

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def export_connections(
        self,
        role: Optional[ConnectionRole] = None,
        fmt: ExportFormat = ExportFormat.JSON,
    ) -> str:
        """
        Serialize connections (passwords masked) and their cached schemas.
        """
        connections = self.registry.list(role)
        document = {
            "exported_at": _utcnow().isoformat(),
            "connections": [connection.to_export_dict() for connection in connections],
            "schemas": {
                connection.id: [schema.model_dump(mode="json") for schema in self.schema_browser.get_schemas(connection.id)]
                for connection in connections
                if self.schema_browser.cache.has(connection.id)
            },
        }
        logger.info(
            "Connections exported",
            role=role.value if role else None,
            format=fmt.value,
            count=len(connections),
            trace_id=current_trace_id(),
        )
        return dump_document(document, fmt)
