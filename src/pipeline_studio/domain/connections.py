"""
Connection domain models.

A Credential addresses one external database; a Connection wraps a
credential with a display name, a role (source/target) and the status
reached by the last connectivity test.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from ..config_constants import ENGINE_DEFAULT_PORTS, DatabaseEngine
from .base_enums import ConnectionRole, ConnectionStatus
from .errors import ValidationError


class Credential(BaseModel):
    """Immutable address of one external database."""

    model_config = ConfigDict(frozen=True)

    connection_type: DatabaseEngine = Field(default=DatabaseEngine.MYSQL, description="Database engine")
    host: str = Field(default="", description="Hostname or IP of the database server")
    port: Optional[str] = Field(default=None, description="Port; engine default when absent")
    username: Optional[str] = Field(default=None, description="Login user")
    password: Optional[SecretStr] = Field(default=None, description="Login password, never displayed once set")
    database: Optional[str] = Field(default=None, description="Selected database, absent until picked")

    @property
    def effective_port(self) -> str:
        """Port to use on the wire, falling back to the engine default."""
        return self.port or ENGINE_DEFAULT_PORTS[self.connection_type]

    def require_host(self) -> None:
        """Raise ValidationError unless a host is set (needed for any network action)."""
        if not self.host or not self.host.strip():
            raise ValidationError("Host is required to contact the database", details={"field": "host"})

    def require_database(self) -> None:
        """Raise ValidationError unless a database is selected (needed for schema browsing)."""
        if not self.database:
            raise ValidationError(
                "Select a database before browsing schemas",
                details={"field": "database"},
            )

    def with_database(self, database: Optional[str]) -> "Credential":
        return self.model_copy(update={"database": database})

    def to_gateway_payload(self) -> Dict[str, Any]:
        """Body sent to the gateway: {db_type, host, port, username, password[, database]}."""
        payload: Dict[str, Any] = {
            "db_type": self.connection_type.value,
            "host": self.host,
            "port": self.effective_port,
            "username": self.username or "",
            "password": self.password.get_secret_value() if self.password else "",
        }
        if self.database:
            payload["database"] = self.database
        return payload


class ConnectionDraft(BaseModel):
    """Form input for a new connection; id and status are assigned on insert."""

    name: str = Field(..., min_length=1, description="Display label")
    type: ConnectionRole = Field(..., description="source or target")
    credential: Credential = Field(..., description="How to reach the database")


class Connection(BaseModel):
    """A registered connection as held by the registry."""

    id: str = Field(..., description="Opaque identifier generated at creation")
    name: str = Field(..., description="Display label")
    type: ConnectionRole = Field(..., description="source or target")
    credential: Credential = Field(..., description="Embedded credential, replaced wholesale on edit")
    status: ConnectionStatus = Field(default=ConnectionStatus.PENDING, description="Result of the last action")
    last_tested: Optional[datetime] = Field(default=None, description="When the last test finished (UTC)")
    databases: List[str] = Field(default_factory=list, description="Databases reported by the last test")
    tables: List[str] = Field(default_factory=list, description="Tables of the selected database")

    @property
    def database(self) -> Optional[str]:
        return self.credential.database

    def with_credential(self, credential: Credential) -> "Connection":
        return self.model_copy(update={"credential": credential})

    def to_export_dict(self) -> Dict[str, Any]:
        """Serializable form with the password masked."""
        data = self.model_dump(mode="json")
        if self.credential.password is not None:
            data["credential"]["password"] = "********"
        return data


class ConnectionCheckResult(BaseModel):
    """Outcome of a connectivity check or test."""

    success: bool = Field(..., description="Whether the check succeeded")
    message: str = Field(..., description="User-facing message")
    databases: List[str] = Field(default_factory=list, description="Databases reported by the gateway")
    simulated: bool = Field(default=False, description="True when the local demo fallback answered")


class DatabaseSelectionResult(BaseModel):
    """Outcome of picking a database and listing its tables."""

    success: bool = Field(..., description="Whether the table listing succeeded")
    message: str = Field(..., description="User-facing message")
    database: Optional[str] = Field(default=None, description="Database that was selected")
    tables: List[str] = Field(default_factory=list, description="Tables of the selected database")
    simulated: bool = Field(default=False, description="True when the local demo fallback answered")
