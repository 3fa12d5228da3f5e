"""
REST routers for Pipeline Studio, mounted under /api/v1 by main.py.

Handlers stay thin: they translate request models into service calls and
service results into response models. Domain errors propagate to the
exception handlers in middleware.py.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query, Response, status

from ..domain.base_enums import ConnectionRole, ExportFormat
from ..domain.errors import NotFoundError, ValidationError
from ..domain.pipeline import FlowEdge, FlowNode, TableMapping
from ..domain.requests import (
    AddTableNodeRequest,
    AddTransformationNodeRequest,
    ConnectNodesRequest,
    CorsProxyRequest,
    CreateConnectionRequest,
    CreateGraphRequest,
    ImportGraphRequest,
    LoginRequest,
    RelationshipRequest,
    SeedGraphRequest,
    SelectDatabaseRequest,
    SelectedTablesRequest,
    SelectionRequest,
    SelectTableRequest,
    SignupRequest,
    TableMappingRequest,
    TransformationRequest,
    UpdateConnectionRequest,
)
from ..domain.responses import (
    ConnectionListResponse,
    ConnectionResponse,
    ConnectionTestResponse,
    ConnectionView,
    DatabaseListResponse,
    DatabaseSelectionResponse,
    DeleteResponse,
    GraphListResponse,
    GraphResponse,
    GraphSummary,
    NoticeListResponse,
    NoticeResponse,
    SchemaListResponse,
    SelectionResponse,
)
from ..domain.schema_nodes import TablePreviewResult
from ..domain.session import User
from ..domain.transformations import TransformationResult
from ..repositories.pipeline_graph import PipelineGraph
from ..services.connection_service import ConnectionService
from ..utils.logging import get_module_logger
from ..utils.tracing import get_trace_id
from .dependencies import (
    ApiCheckServiceDep,
    ConnectionServiceDep,
    NotificationCenterDep,
    PipelineServiceDep,
    SchemaBrowserDep,
    SessionServiceDep,
    SettingsDep,
    TransformationServiceDep,
)
from .middleware import error_responses


logger = get_module_logger()

API_PREFIX = "/api/v1"

_MEDIA_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.YAML: "application/x-yaml",
}


def _document_response(content: str, fmt: ExportFormat, file_name: str) -> Response:
    stem = file_name.rsplit(".", 1)[0]
    return Response(
        content=content,
        media_type=_MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{stem}.{fmt.value}"'},
    )


def _graph_response(graph: PipelineGraph) -> GraphResponse:
    return GraphResponse(
        trace_id=get_trace_id(),
        id=graph.id,
        name=graph.name,
        nodes=graph.nodes,
        edges=graph.edges,
        selected_tables=list(graph.selected_tables),
    )


# =============================================================================
# Connections
# =============================================================================

connections_router = APIRouter(prefix=f"{API_PREFIX}/connections", tags=["Connections"])


def _require_connection_view(service: ConnectionService, connection_id: str) -> ConnectionView:
    connection = service.get_connection_by_id(connection_id)
    if connection is None:
        raise NotFoundError(f"Connection not found: {connection_id}", details={"connection_id": connection_id})
    return ConnectionView.from_connection(connection)


def _connection_view_or_none(service: ConnectionService, connection_id: str) -> Optional[ConnectionView]:
    connection = service.get_connection_by_id(connection_id)
    return ConnectionView.from_connection(connection) if connection else None


@connections_router.get("", response_model=ConnectionListResponse)
async def list_connections(
    service: ConnectionServiceDep,
    role: Optional[ConnectionRole] = Query(default=None, description="Filter by source or target"),
) -> ConnectionListResponse:
    connections = [ConnectionView.from_connection(c) for c in service.list_connections(role)]
    return ConnectionListResponse(trace_id=get_trace_id(), connections=connections, count=len(connections))


@connections_router.post(
    "",
    response_model=ConnectionResponse,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(422),
)
async def create_connection(request: CreateConnectionRequest, service: ConnectionServiceDep) -> ConnectionResponse:
    connection_id = service.add_connection(request.to_draft())
    logger.info("Connection registered", connection_id=connection_id, trace_id=get_trace_id())
    return ConnectionResponse(trace_id=get_trace_id(), connection=_require_connection_view(service, connection_id))


@connections_router.get("/export")
async def export_connections(
    service: ConnectionServiceDep,
    role: Optional[ConnectionRole] = Query(default=None),
    format: ExportFormat = Query(default=ExportFormat.JSON),
) -> Response:
    """Connections (passwords masked) and their cached schemas as a document."""
    return _document_response(service.export_connections(role, format), format, "connections.json")


@connections_router.get("/{connection_id}", response_model=ConnectionResponse, responses=error_responses(404))
async def get_connection(connection_id: str, service: ConnectionServiceDep) -> ConnectionResponse:
    return ConnectionResponse(trace_id=get_trace_id(), connection=_require_connection_view(service, connection_id))


@connections_router.patch("/{connection_id}", response_model=ConnectionResponse, responses=error_responses(404, 422))
async def update_connection(
    connection_id: str,
    request: UpdateConnectionRequest,
    service: ConnectionServiceDep,
) -> ConnectionResponse:
    current = service.get_connection_by_id(connection_id)
    if current is None:
        raise NotFoundError(f"Connection not found: {connection_id}", details={"connection_id": connection_id})
    updated = service.update_connection(connection_id, **request.changes_for(current.credential))
    return ConnectionResponse(trace_id=get_trace_id(), connection=ConnectionView.from_connection(updated))


@connections_router.delete("/{connection_id}", response_model=DeleteResponse)
async def delete_connection(
    connection_id: str,
    service: ConnectionServiceDep,
    forget_schemas: bool = Query(default=False, description="Also drop the cached schemas"),
) -> DeleteResponse:
    deleted = service.remove_connection(connection_id)
    if forget_schemas:
        service.forget_schemas(connection_id)
    return DeleteResponse(trace_id=get_trace_id(), deleted=deleted)


@connections_router.post("/{connection_id}/test", response_model=ConnectionTestResponse, responses=error_responses(404))
async def test_connection(connection_id: str, service: ConnectionServiceDep) -> ConnectionTestResponse:
    """Run the gateway check; failures come back as success=false, not as errors."""
    _require_connection_view(service, connection_id)
    result = await service.test_connection(connection_id)
    return ConnectionTestResponse(
        trace_id=get_trace_id(),
        connection=_connection_view_or_none(service, connection_id),
        result=result,
    )


@connections_router.get("/{connection_id}/databases", response_model=DatabaseListResponse, responses=error_responses(404))
async def list_databases(connection_id: str, service: ConnectionServiceDep) -> DatabaseListResponse:
    databases = await service.list_databases(connection_id)
    return DatabaseListResponse(trace_id=get_trace_id(), connection_id=connection_id, databases=databases)


@connections_router.post(
    "/{connection_id}/database",
    response_model=DatabaseSelectionResponse,
    responses=error_responses(404, 422),
)
async def select_database(
    connection_id: str,
    request: SelectDatabaseRequest,
    service: ConnectionServiceDep,
) -> DatabaseSelectionResponse:
    result = await service.select_database_for_connection(connection_id, request.database)
    return DatabaseSelectionResponse(
        trace_id=get_trace_id(),
        connection=_connection_view_or_none(service, connection_id),
        result=result,
    )


# =============================================================================
# Schemas and table selection
# =============================================================================

schemas_router = APIRouter(prefix=API_PREFIX, tags=["Schemas"])


@schemas_router.post(
    "/connections/{connection_id}/schemas/fetch",
    response_model=SchemaListResponse,
    responses=error_responses(404, 422),
)
async def fetch_schemas(connection_id: str, browser: SchemaBrowserDep) -> SchemaListResponse:
    result = await browser.fetch_schemas(connection_id)
    return SchemaListResponse(
        trace_id=get_trace_id(),
        connection_id=connection_id,
        success=result.success,
        message=result.message,
        stale=result.stale,
        schemas=result.schemas,
    )


@schemas_router.get("/connections/{connection_id}/schemas", response_model=SchemaListResponse)
async def get_schemas(connection_id: str, browser: SchemaBrowserDep) -> SchemaListResponse:
    schemas = browser.get_schemas(connection_id)
    return SchemaListResponse(
        trace_id=get_trace_id(),
        connection_id=connection_id,
        message=f"{len(schemas)} cached schema(s)",
        schemas=schemas,
    )


@schemas_router.delete("/connections/{connection_id}/schemas", response_model=DeleteResponse)
async def forget_schemas(connection_id: str, browser: SchemaBrowserDep) -> DeleteResponse:
    return DeleteResponse(trace_id=get_trace_id(), deleted=browser.forget(connection_id))


@schemas_router.get(
    "/connections/{connection_id}/tables/{schema_name}/{table_name}/preview",
    response_model=TablePreviewResult,
    responses=error_responses(404, 422),
)
async def preview_table(
    connection_id: str,
    schema_name: str,
    table_name: str,
    browser: SchemaBrowserDep,
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
) -> TablePreviewResult:
    return await browser.preview_table(connection_id, schema_name, table_name, limit)


@schemas_router.get(
    "/connections/{connection_id}/tables/{schema_name}/{table_name}/sample",
    response_model=TablePreviewResult,
    responses=error_responses(404, 422),
)
async def sample_table(
    connection_id: str,
    schema_name: str,
    table_name: str,
    browser: SchemaBrowserDep,
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
) -> TablePreviewResult:
    return await browser.fetch_sample_data(connection_id, schema_name, table_name, limit)


@schemas_router.get("/selection", response_model=SelectionResponse)
async def get_selection(browser: SchemaBrowserDep) -> SelectionResponse:
    return SelectionResponse(trace_id=get_trace_id(), selection=browser.selection)


@schemas_router.put("/selection", response_model=SelectionResponse)
async def select_table(request: SelectTableRequest, browser: SchemaBrowserDep) -> SelectionResponse:
    selection = browser.select_table(request.schema_name, request.table_name)
    return SelectionResponse(trace_id=get_trace_id(), selection=selection)


@schemas_router.delete("/selection", response_model=SelectionResponse)
async def clear_table_selection(browser: SchemaBrowserDep) -> SelectionResponse:
    browser.clear_selection()
    return SelectionResponse(trace_id=get_trace_id(), selection=None)


# =============================================================================
# Transformations
# =============================================================================

transformations_router = APIRouter(prefix=f"{API_PREFIX}/transformations", tags=["Transformations"])


@transformations_router.post("", response_model=Optional[TransformationResult])
async def submit_transformation(
    request: TransformationRequest,
    service: TransformationServiceDep,
) -> Optional[TransformationResult]:
    """Blank fields are ignored and the current result is returned unchanged."""
    return service.process_transformation(
        request.instruction,
        request.table_name,
        request.schema_name,
        request.connection_id,
    )


@transformations_router.get("/current", response_model=Optional[TransformationResult])
async def current_transformation(service: TransformationServiceDep) -> Optional[TransformationResult]:
    return service.processing_result


@transformations_router.post("/preview", response_model=TransformationResult, responses=error_responses(404, 422))
async def preview_transformation(
    request: TransformationRequest,
    service: TransformationServiceDep,
) -> TransformationResult:
    if not request.connection_id:
        raise ValidationError("A connection is required to preview a transformation", details={"field": "connection_id"})
    return await service.preview_transformation(
        request.instruction,
        request.table_name,
        request.schema_name,
        request.connection_id,
    )


# =============================================================================
# Pipeline graphs
# =============================================================================

pipelines_router = APIRouter(prefix=f"{API_PREFIX}/pipelines", tags=["Pipelines"])


@pipelines_router.get("", response_model=GraphListResponse)
async def list_graphs(pipelines: PipelineServiceDep) -> GraphListResponse:
    graphs = [
        GraphSummary(id=g.id, name=g.name, node_count=len(g.nodes), edge_count=len(g.edges))
        for g in pipelines.list_graphs()
    ]
    return GraphListResponse(trace_id=get_trace_id(), graphs=graphs)


@pipelines_router.post("", response_model=GraphResponse, status_code=status.HTTP_201_CREATED)
async def create_graph(request: CreateGraphRequest, pipelines: PipelineServiceDep) -> GraphResponse:
    return _graph_response(pipelines.create_graph(request.name))


@pipelines_router.post(
    "/import",
    response_model=GraphResponse,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(400, 422),
)
async def import_graph(request: ImportGraphRequest, pipelines: PipelineServiceDep) -> GraphResponse:
    return _graph_response(pipelines.import_schema(request.document, request.name, request.format))


@pipelines_router.get("/{graph_id}", response_model=GraphResponse, responses=error_responses(404))
async def get_graph(graph_id: str, pipelines: PipelineServiceDep) -> GraphResponse:
    return _graph_response(pipelines.get_graph(graph_id))


@pipelines_router.delete("/{graph_id}", response_model=DeleteResponse)
async def delete_graph(graph_id: str, pipelines: PipelineServiceDep) -> DeleteResponse:
    return DeleteResponse(trace_id=get_trace_id(), deleted=pipelines.delete_graph(graph_id))


@pipelines_router.post(
    "/{graph_id}/tables",
    response_model=FlowNode,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(404),
)
async def add_table_node(graph_id: str, request: AddTableNodeRequest, pipelines: PipelineServiceDep) -> FlowNode:
    return pipelines.add_table(graph_id, request.name, request.columns, request.source)


@pipelines_router.post(
    "/{graph_id}/transformations",
    response_model=FlowNode,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(404),
)
async def add_transformation_node(
    graph_id: str,
    request: AddTransformationNodeRequest,
    pipelines: PipelineServiceDep,
) -> FlowNode:
    return pipelines.add_transformation(graph_id, request.label, request.operation, request.config)


@pipelines_router.post("/{graph_id}/edges", response_model=Optional[FlowEdge], responses=error_responses(404))
async def connect_nodes(graph_id: str, request: ConnectNodesRequest, pipelines: PipelineServiceDep) -> Optional[FlowEdge]:
    """Returns null when either endpoint is missing; the graph is unchanged."""
    return pipelines.on_connect(graph_id, request.source, request.target, request.label)


@pipelines_router.post(
    "/{graph_id}/relationships",
    response_model=FlowEdge,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(404, 422),
)
async def add_relationship(graph_id: str, request: RelationshipRequest, pipelines: PipelineServiceDep) -> FlowEdge:
    return pipelines.add_relationship(
        graph_id,
        request.source_id,
        request.source_column,
        request.target_id,
        request.target_column,
    )


@pipelines_router.delete("/{graph_id}/nodes/{node_id}", response_model=DeleteResponse, responses=error_responses(404))
async def remove_node(graph_id: str, node_id: str, pipelines: PipelineServiceDep) -> DeleteResponse:
    return DeleteResponse(trace_id=get_trace_id(), deleted=pipelines.remove_node(graph_id, node_id))


@pipelines_router.delete("/{graph_id}/edges/{edge_id}", response_model=DeleteResponse, responses=error_responses(404))
async def remove_edge(graph_id: str, edge_id: str, pipelines: PipelineServiceDep) -> DeleteResponse:
    return DeleteResponse(trace_id=get_trace_id(), deleted=pipelines.remove_edge(graph_id, edge_id))


@pipelines_router.put("/{graph_id}/selection", response_model=GraphResponse, responses=error_responses(404))
async def select_elements(graph_id: str, request: SelectionRequest, pipelines: PipelineServiceDep) -> GraphResponse:
    pipelines.select(graph_id, request.ids, request.additive)
    return _graph_response(pipelines.get_graph(graph_id))


@pipelines_router.delete("/{graph_id}/selection", response_model=GraphResponse, responses=error_responses(404))
async def clear_graph_selection(graph_id: str, pipelines: PipelineServiceDep) -> GraphResponse:
    pipelines.clear_selection(graph_id)
    return _graph_response(pipelines.get_graph(graph_id))


@pipelines_router.post("/{graph_id}/delete-selected", response_model=NoticeResponse, responses=error_responses(404))
async def delete_selected(graph_id: str, pipelines: PipelineServiceDep) -> NoticeResponse:
    return NoticeResponse(trace_id=get_trace_id(), notice=pipelines.delete_selected(graph_id))


@pipelines_router.post("/{graph_id}/layout", response_model=GraphResponse, responses=error_responses(404))
async def auto_layout(graph_id: str, pipelines: PipelineServiceDep) -> GraphResponse:
    pipelines.auto_layout(graph_id)
    return _graph_response(pipelines.get_graph(graph_id))


@pipelines_router.put("/{graph_id}/selected-tables", response_model=GraphResponse, responses=error_responses(404))
async def set_selected_tables(
    graph_id: str,
    request: SelectedTablesRequest,
    pipelines: PipelineServiceDep,
) -> GraphResponse:
    pipelines.set_selected_tables(graph_id, request.tables)
    return _graph_response(pipelines.get_graph(graph_id))


@pipelines_router.get("/{graph_id}/export", responses=error_responses(404))
async def export_graph(
    graph_id: str,
    pipelines: PipelineServiceDep,
    settings: SettingsDep,
    format: ExportFormat = Query(default=ExportFormat.JSON),
) -> Response:
    return _document_response(pipelines.export_schema(graph_id, format), format, settings.pipeline.export_file_name)


@pipelines_router.post("/{graph_id}/seed", response_model=GraphResponse, responses=error_responses(404))
async def seed_graph(
    graph_id: str,
    request: SeedGraphRequest,
    pipelines: PipelineServiceDep,
    connections: ConnectionServiceDep,
    browser: SchemaBrowserDep,
) -> GraphResponse:
    connection = connections.get_connection_by_id(request.connection_id)
    if connection is None:
        raise NotFoundError(
            f"Connection not found: {request.connection_id}",
            details={"connection_id": request.connection_id},
        )
    pipelines.seed_from_schemas(graph_id, browser.get_schemas(connection.id), source=connection.name)
    return _graph_response(pipelines.get_graph(graph_id))


@pipelines_router.post(
    "/{graph_id}/mappings",
    response_model=TableMapping,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(400, 404),
)
async def add_table_mapping(graph_id: str, request: TableMappingRequest, pipelines: PipelineServiceDep) -> TableMapping:
    return pipelines.add_table_mapping(
        graph_id,
        request.source_db,
        request.source_table,
        request.target_db,
        request.target_table,
    )


# =============================================================================
# Session
# =============================================================================

session_router = APIRouter(prefix=f"{API_PREFIX}/session", tags=["Session"])


@session_router.get("")
async def get_session(session: SessionServiceDep) -> Dict[str, Any]:
    user = session.current_user
    return {
        "trace_id": get_trace_id(),
        "authenticated": session.is_authenticated,
        "user": user.model_dump(mode="json") if user else None,
    }


@session_router.post("/login", response_model=User, responses=error_responses(401))
async def login(request: LoginRequest, session: SessionServiceDep) -> User:
    return session.login(request.email, request.password.get_secret_value())


@session_router.post("/signup", response_model=User, status_code=status.HTTP_201_CREATED, responses=error_responses(401))
async def signup(request: SignupRequest, session: SessionServiceDep) -> User:
    return session.signup(request.email, request.password.get_secret_value(), request.name)


@session_router.post("/logout")
async def logout(session: SessionServiceDep) -> Dict[str, Any]:
    session.logout()
    return {"trace_id": get_trace_id(), "authenticated": False}


# =============================================================================
# Settings (gateway reachability and CORS proxy)
# =============================================================================

settings_router = APIRouter(prefix=f"{API_PREFIX}/settings", tags=["Settings"])


@settings_router.get("/api-check")
async def check_api_server(checks: ApiCheckServiceDep) -> Dict[str, Any]:
    return await checks.check_api_server()


@settings_router.get("/cors-proxy")
async def get_cors_proxy(checks: ApiCheckServiceDep) -> Dict[str, Any]:
    return checks.proxy_settings()


@settings_router.put("/cors-proxy", responses=error_responses(422))
async def set_cors_proxy(request: CorsProxyRequest, checks: ApiCheckServiceDep) -> Dict[str, Any]:
    return checks.set_cors_proxy(request.proxy_url, request.enabled)


@settings_router.delete("/cors-proxy")
async def clear_cors_proxy(checks: ApiCheckServiceDep) -> Dict[str, Any]:
    return checks.clear_cors_proxy()


@settings_router.post("/cors-proxy/test")
async def test_cors_proxy(request: CorsProxyRequest, checks: ApiCheckServiceDep) -> Dict[str, Any]:
    return await checks.test_cors_proxy(request.proxy_url)


# =============================================================================
# Notices
# =============================================================================

notices_router = APIRouter(prefix=f"{API_PREFIX}/notices", tags=["Notices"])


@notices_router.get("", response_model=NoticeListResponse)
async def list_notices(
    notifications: NotificationCenterDep,
    drain: bool = Query(default=True, description="Return only undelivered notices and mark them delivered"),
) -> NoticeListResponse:
    notices = notifications.drain() if drain else notifications.history()
    return NoticeListResponse(trace_id=get_trace_id(), notices=notices)


@notices_router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_notices(notifications: NotificationCenterDep) -> Response:
    notifications.clear()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


ROUTERS: List[APIRouter] = [
    connections_router,
    schemas_router,
    transformations_router,
    pipelines_router,
    session_router,
    settings_router,
    notices_router,
]
