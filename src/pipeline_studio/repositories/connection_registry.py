"""
Connection Registry.

In-memory mapping from generated connection ids to Connection records.
Insertion order is kept so listings match the order connections were added.

The registry only stores records; status transitions, notices and gateway
calls are orchestrated by ConnectionService.
"""

from typing import Any, Dict, List, Optional

from ..domain.base_enums import ConnectionRole, ConnectionStatus
from ..domain.connections import Connection, ConnectionDraft
from ..domain.errors import NotFoundError, ValidationError
from ..utils.id_generation import IdGenerator
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id


logger = get_module_logger()

# Fields a caller may replace through update()
UPDATABLE_FIELDS = {"name", "type", "credential", "status", "last_tested", "databases", "tables"}


class ConnectionRegistry:
    """
    Repository of known connections.

    Usage:
        registry = ConnectionRegistry(IdGenerator())
        connection_id = registry.add(draft)
        registry.update(connection_id, status=ConnectionStatus.CONNECTED)
        registry.remove(connection_id)
    """

    def __init__(self, id_generator: IdGenerator):
        self.id_generator = id_generator
        self._connections: Dict[str, Connection] = {}
        logger.info("ConnectionRegistry initialized")

    def add(self, draft: ConnectionDraft) -> Connection:
        """
        Insert a new connection with status=pending and no last_tested stamp.

        No duplicate detection is done: two drafts with the same host and
        database produce two connections.
        """
        connection = Connection(
            id=self.id_generator.new_id("conn"),
            name=draft.name,
            type=draft.type,
            credential=draft.credential,
            status=ConnectionStatus.PENDING,
            last_tested=None,
        )
        self._connections[connection.id] = connection

        logger.info(
            "Connection added",
            connection_id=connection.id,
            role=connection.type.value,
            engine=connection.credential.connection_type.value,
            trace_id=current_trace_id(),
        )
        return connection

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def require(self, connection_id: str) -> Connection:
        """Return the connection or raise NotFoundError."""
        connection = self._connections.get(connection_id)
        if connection is None:
            raise NotFoundError(
                f"Connection not found: {connection_id}",
                details={"connection_id": connection_id},
            )
        return connection

    def update(self, connection_id: str, **changes: Any) -> Connection:
        """
        Replace fields of a connection and store the new record.

        Records are never mutated in place; a credential passed here replaces
        the previous one wholesale.

        Raises:
            NotFoundError: Unknown connection id
            ValidationError: Unknown field name
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Cannot update connection fields: {', '.join(sorted(unknown))}",
                details={"fields": sorted(unknown)},
            )

        current = self.require(connection_id)
        updated = current.model_copy(update=changes)
        self._connections[connection_id] = updated

        logger.debug(
            "Connection updated",
            connection_id=connection_id,
            fields=sorted(changes),
            status=updated.status.value,
            trace_id=current_trace_id(),
        )
        return updated

    def remove(self, connection_id: str) -> bool:
        """
        Remove a connection. Returns False when the id was unknown.

        Cached schemas and table selections are left untouched.
        """
        removed = self._connections.pop(connection_id, None) is not None
        logger.info(
            "Connection removed" if removed else "Connection to remove not found",
            connection_id=connection_id,
            trace_id=current_trace_id(),
        )
        return removed

    def list(self, role: Optional[ConnectionRole] = None) -> List[Connection]:
        connections = list(self._connections.values())
        if role is None:
            return connections
        return [connection for connection in connections if connection.type == role]

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections
