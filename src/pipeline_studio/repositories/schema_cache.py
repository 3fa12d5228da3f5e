"""
Schema Cache.

Per-connection schema lists, replaced wholesale on every fetch. Each fetch
takes a generation number; a response carrying a generation older than the
one already stored is discarded, so out-of-order responses can not leave
stale data behind.
"""

from typing import Dict, List, Optional

from ..domain.schema_nodes import SchemaNode, TableNode
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id


logger = get_module_logger()


class SchemaCache:
    """
    In-memory schema cache keyed by connection id.

    Usage:
        generation = cache.begin_fetch("conn-1")
        schemas = await load_schemas()
        cache.store("conn-1", generation, schemas)
    """

    def __init__(self) -> None:
        self._schemas: Dict[str, List[SchemaNode]] = {}
        self._issued: Dict[str, int] = {}
        self._stored: Dict[str, int] = {}

    def begin_fetch(self, connection_id: str) -> int:
        """Reserve the next generation number for a fetch of this connection."""
        generation = self._issued.get(connection_id, 0) + 1
        self._issued[connection_id] = generation
        return generation

    def is_current(self, connection_id: str, generation: int) -> bool:
        return generation >= self._stored.get(connection_id, 0)

    def store(self, connection_id: str, generation: int, schemas: List[SchemaNode]) -> bool:
        """
        Replace the cached schemas unless a newer generation is already stored.

        Returns:
            True when stored, False when the response was stale and discarded
        """
        if not self.is_current(connection_id, generation):
            logger.info(
                "Discarding stale schema response",
                connection_id=connection_id,
                generation=generation,
                stored_generation=self._stored[connection_id],
                trace_id=current_trace_id(),
            )
            return False

        self._schemas[connection_id] = list(schemas)
        self._stored[connection_id] = generation
        logger.info(
            "Schemas cached",
            connection_id=connection_id,
            generation=generation,
            schema_count=len(schemas),
            table_count=sum(len(schema.tables) for schema in schemas),
            trace_id=current_trace_id(),
        )
        return True

    def get(self, connection_id: str) -> List[SchemaNode]:
        return list(self._schemas.get(connection_id, []))

    def has(self, connection_id: str) -> bool:
        return connection_id in self._schemas

    def find_table(self, connection_id: str, schema_name: str, table_name: str) -> Optional[TableNode]:
        for schema in self._schemas.get(connection_id, []):
            if schema.name == schema_name:
                return schema.table(table_name)
        return None

    def forget(self, connection_id: str) -> bool:
        """
        Drop the cached schemas of a connection.

        The generation counters are kept so a fetch started before forget()
        still can not overwrite the result of a later one.
        """
        return self._schemas.pop(connection_id, None) is not None

    def connection_ids(self) -> List[str]:
        return list(self._schemas)
