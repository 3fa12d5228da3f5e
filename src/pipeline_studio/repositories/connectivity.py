"""
Connectivity Repository.

Wraps the gateway calls that need a credential (connection test, table
listing, table preview) and applies the local demo fallback: when the
gateway fails for host "localhost" and user "root", a fabricated success is
returned so the builder stays usable without the tunnel.

Error Handling:
- check() and list_tables() never raise for gateway failures; they return
  a result with success=False and a user-facing message
- fetch_preview_records() raises GatewayError subclasses for non-demo
  credentials so the caller decides how to report them
"""

from typing import Any, Dict, List, Tuple

from ..config_constants import LOCAL_DEMO_DATABASES, LOCAL_DEMO_HOST, LOCAL_DEMO_USERNAME
from ..domain.connections import ConnectionCheckResult, Credential, DatabaseSelectionResult
from ..domain.errors import GatewayError, ValidationError
from ..infrastructure.gateway_client import GatewayClient
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id
from .demo_catalog import demo_records, demo_table_names


logger = get_module_logger()


def is_local_demo(credential: Credential) -> bool:
    """True for the localhost/root pair that gets the demo fallback."""
    return credential.host.strip() == LOCAL_DEMO_HOST and credential.username == LOCAL_DEMO_USERNAME


class ConnectivityChecker:
    """
    Repository for credential-scoped gateway calls.

    Usage:
        checker = ConnectivityChecker(gateway_client)
        result = await checker.check(credential)
        if result.success:
            print(result.databases)
    """

    def __init__(self, gateway: GatewayClient):
        self.gateway = gateway
        logger.info("ConnectivityChecker initialized")

    async def check(self, credential: Credential) -> ConnectionCheckResult:
        """
        Test a credential against the gateway and list its databases.

        Returns:
            ConnectionCheckResult; success=False for a missing host, a
            non-2xx/HTML/unsuccessful response, a network failure or a
            timeout (unless the local demo fallback applies)
        """
        trace_id = current_trace_id()

        try:
            credential.require_host()
        except ValidationError as e:
            logger.warning("Connection check rejected", reason=e.message, trace_id=trace_id)
            return ConnectionCheckResult(success=False, message=e.message)

        try:
            databases = await self.gateway.connect_database(credential)
        except GatewayError as e:
            if is_local_demo(credential):
                logger.warning(
                    "Gateway unavailable, using local demo databases",
                    host=credential.host,
                    error_type=type(e).__name__,
                    trace_id=trace_id,
                )
                return ConnectionCheckResult(
                    success=True,
                    message=f"Connected to local demo server on {credential.host}",
                    databases=list(LOCAL_DEMO_DATABASES),
                    simulated=True,
                )
            logger.warning(
                "Connection check failed",
                host=credential.host,
                error_code=e.error_code,
                error=e.message,
                trace_id=trace_id,
            )
            return ConnectionCheckResult(
                success=False,
                message=f"Unable to connect to database: {e.message}",
            )

        logger.info(
            "Connection check succeeded",
            host=credential.host,
            database_count=len(databases),
            trace_id=trace_id,
        )
        return ConnectionCheckResult(
            success=True,
            message=f"Successfully connected to {credential.host}",
            databases=databases,
        )

    async def list_tables(self, credential: Credential) -> DatabaseSelectionResult:
        """
        List the tables of the credential's selected database.

        Raises:
            ValidationError: If the credential has no host or database
        """
        credential.require_host()
        credential.require_database()
        trace_id = current_trace_id()

        try:
            tables = await self.gateway.select_database(credential)
        except GatewayError as e:
            if is_local_demo(credential):
                logger.warning(
                    "Gateway unavailable, using local demo tables",
                    database=credential.database,
                    error_type=type(e).__name__,
                    trace_id=trace_id,
                )
                return DatabaseSelectionResult(
                    success=True,
                    message=f"Database {credential.database} selected",
                    database=credential.database,
                    tables=demo_table_names(),
                    simulated=True,
                )
            logger.warning(
                "Table listing failed",
                database=credential.database,
                error_code=e.error_code,
                error=e.message,
                trace_id=trace_id,
            )
            return DatabaseSelectionResult(
                success=False,
                message=f"Unable to fetch tables: {e.message}",
                database=credential.database,
            )

        return DatabaseSelectionResult(
            success=True,
            message=f"Database {credential.database} selected",
            database=credential.database,
            tables=tables,
        )

    async def fetch_preview_records(
        self,
        credential: Credential,
        table_name: str,
    ) -> Tuple[List[Dict[str, Any]], bool]:
        """
        Fetch preview rows of a table.

        Returns:
            (records, simulated)

        Raises:
            GatewayError: For non-demo credentials when the gateway fails
        """
        try:
            return await self.gateway.preview_table(table_name), False
        except GatewayError as e:
            if not is_local_demo(credential):
                raise
            logger.warning(
                "Gateway unavailable, using local demo rows",
                table=table_name,
                error_type=type(e).__name__,
                trace_id=current_trace_id(),
            )
            return demo_records(table_name), True
