"""
API request models for Pipeline Studio.

These models define the structure for all incoming API requests,
ensuring proper validation and type safety.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, SecretStr

from ..config_constants import DatabaseEngine
from .base_enums import ConnectionRole, ExportFormat
from .connections import ConnectionDraft, Credential
from .schema_nodes import ColumnNode


# -------------------------
# Connections
# -------------------------

class CreateConnectionRequest(BaseModel):
    """
    Request model for registering a database connection.

    The connection starts in status "pending"; call the test endpoint to
    check it against the gateway.
    """

    name: str = Field(..., min_length=1, description="Display label", examples=["Production MySQL"])
    type: ConnectionRole = Field(..., description="source or target")
    connection_type: DatabaseEngine = Field(default=DatabaseEngine.MYSQL, description="Database engine")
    host: str = Field(default="", description="Hostname or IP", examples=["localhost"])
    port: Optional[str] = Field(default=None, description="Port; engine default when omitted", examples=["3306"])
    username: Optional[str] = Field(default=None, description="Login user", examples=["root"])
    password: Optional[SecretStr] = Field(default=None, description="Login password")
    database: Optional[str] = Field(default=None, description="Database, usually picked after a test")

    def to_draft(self) -> ConnectionDraft:
        return ConnectionDraft(
            name=self.name,
            type=self.type,
            credential=Credential(
                connection_type=self.connection_type,
                host=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                database=self.database,
            ),
        )


class UpdateConnectionRequest(BaseModel):
    """
    Request model for editing a connection.

    Omitted fields keep their value. Credential fields replace the stored
    credential wholesale; an omitted password keeps the old one.
    """

    name: Optional[str] = Field(default=None, min_length=1)
    type: Optional[ConnectionRole] = None
    connection_type: Optional[DatabaseEngine] = None
    host: Optional[str] = None
    port: Optional[str] = None
    username: Optional[str] = None
    password: Optional[SecretStr] = None
    database: Optional[str] = None

    def changes_for(self, current: Credential) -> Dict[str, Any]:
        """Translate the request into registry update() keyword arguments."""
        changes: Dict[str, Any] = {}
        if self.name is not None:
            changes["name"] = self.name
        if self.type is not None:
            changes["type"] = self.type

        credential_fields = self.model_dump(
            include={"connection_type", "host", "port", "username", "password", "database"},
            exclude_unset=True,
        )
        if credential_fields:
            merged = current.model_dump()
            merged.update(credential_fields)
            changes["credential"] = Credential(**merged)
        return changes


class SelectDatabaseRequest(BaseModel):
    database: str = Field(..., min_length=1, description="Database to select", examples=["airportdb"])


# -------------------------
# Schemas and tables
# -------------------------

class SelectTableRequest(BaseModel):
    schema_name: str = Field(..., min_length=1, description="Schema of the table", examples=["public"])
    table_name: str = Field(..., min_length=1, description="Table to activate", examples=["customers"])


# -------------------------
# Transformations
# -------------------------

class TransformationRequest(BaseModel):
    """
    Request model for submitting or previewing a transformation.

    Blank fields are accepted on submit (the request is then ignored);
    previews need all three.
    """

    instruction: str = Field(default="", description="Free-text instruction", examples=["uppercase name; drop email"])
    table_name: str = Field(default="", description="Target table", examples=["customers"])
    schema_name: str = Field(default="", description="Target schema", examples=["public"])
    connection_id: Optional[str] = Field(default=None, description="Connection whose cached columns validate the plan")


# -------------------------
# Pipeline graphs
# -------------------------

class CreateGraphRequest(BaseModel):
    name: str = Field(default="Main pipeline", min_length=1, description="Graph name")


class AddTableNodeRequest(BaseModel):
    name: Optional[str] = Field(default=None, description="Table label; 'Table N' when omitted")
    columns: Optional[List[ColumnNode]] = Field(default=None, description="Columns; id/name when omitted")
    source: Optional[str] = Field(default=None, description="Connection or database the table comes from")


class AddTransformationNodeRequest(BaseModel):
    label: str = Field(..., min_length=1, description="Node label", examples=["Clean emails"])
    operation: Optional[str] = Field(default=None, description="Operation summary")
    config: Dict[str, Any] = Field(default_factory=dict, description="Transformation configuration")


class ConnectNodesRequest(BaseModel):
    source: str = Field(..., description="Source node id")
    target: str = Field(..., description="Target node id")
    label: Optional[str] = Field(default=None, description="Edge label")


class RelationshipRequest(BaseModel):
    source_id: str = Field(..., description="Source table node id")
    source_column: str = Field(..., description="Column on the source table")
    target_id: str = Field(..., description="Target table node id")
    target_column: str = Field(..., description="Column on the target table")


class SelectionRequest(BaseModel):
    ids: List[str] = Field(default_factory=list, description="Node and edge ids to select")
    additive: bool = Field(default=False, description="Keep the current selection")


class SelectedTablesRequest(BaseModel):
    tables: List[str] = Field(default_factory=list, description="Qualified names (schema.table)")


class ImportGraphRequest(BaseModel):
    document: str = Field(..., min_length=1, description="Exported graph document")
    name: str = Field(default="Main pipeline", description="Name of the created graph")
    format: ExportFormat = Field(default=ExportFormat.JSON, description="Document format")


class SeedGraphRequest(BaseModel):
    connection_id: str = Field(..., description="Connection whose cached schemas seed the graph")


class TableMappingRequest(BaseModel):
    source_db: str = Field(..., min_length=1)
    source_table: str = Field(..., min_length=1)
    target_db: str = Field(..., min_length=1)
    target_table: str = Field(..., min_length=1)


# -------------------------
# Session and settings
# -------------------------

class LoginRequest(BaseModel):
    email: str = Field(default="", description="Login email")
    password: SecretStr = Field(default=SecretStr(""), description="Password")


class SignupRequest(LoginRequest):
    name: Optional[str] = Field(default=None, description="Display name")


class CorsProxyRequest(BaseModel):
    proxy_url: str = Field(..., description="Proxy prefix, e.g. https://cors-anywhere.example/")
    enabled: bool = Field(default=True, description="Prefix the gateway URL with the proxy")
