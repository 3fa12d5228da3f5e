"""
Unit tests for domain models.

Tests the Pydantic models shared by the services:
- ColumnNode / TableNode / SchemaNode
- TableSelection / TablePreview
- Credential / Connection
"""

import pytest
from pydantic import ValidationError

from pipeline_studio.config_constants import DatabaseEngine
from pipeline_studio.domain.base_enums import ConnectionRole, ConnectionStatus
from pipeline_studio.domain.connections import Connection, Credential
from pipeline_studio.domain.errors import ValidationError as StudioValidationError
from pipeline_studio.domain.schema_nodes import ColumnNode, SchemaNode, TableNode, TablePreview, TableSelection


class TestColumnNode:
    """Test cases for ColumnNode class."""

    def test_defaults(self):
        column = ColumnNode(name="email")
        assert column.type == "VARCHAR"
        assert column.nullable is True
        assert column.is_primary_key is False
        assert column.references is None

    def test_reference_format(self):
        column = ColumnNode(name="customer_id", is_foreign_key=True, references="customers.id")
        assert column.references == "customers.id"

    def test_invalid_reference_rejected(self):
        with pytest.raises(ValidationError):
            ColumnNode(name="customer_id", references="customers")

    def test_missing_name(self):
        with pytest.raises(ValidationError) as exc_info:
            ColumnNode()  # type: ignore[call-arg]

        error_fields = {error["loc"][0] for error in exc_info.value.errors()}
        assert "name" in error_fields


class TestTableNode:
    """Test cases for TableNode and SchemaNode lookups."""

    def test_column_lookup_keeps_order(self):
        table = TableNode(
            name="customers",
            columns=[ColumnNode(name="id", type="INTEGER"), ColumnNode(name="name")],
        )
        assert table.schema_name == "public"
        assert table.column_names == ["id", "name"]
        assert table.column("name").type == "VARCHAR"
        assert table.column("missing") is None

    def test_schema_table_lookup(self):
        schema = SchemaNode(name="sales", tables=[TableNode(name="products", schema_name="sales")])
        assert schema.table("products").schema_name == "sales"
        assert schema.table("orders") is None


class TestPreviewModels:

    def test_qualified_name(self):
        assert TableSelection(schema_name="public", table_name="orders").qualified_name == "public.orders"

    def test_as_records(self):
        preview = TablePreview(table_name="t", columns=["id", "name"], rows=[[1, "a"], [2, None]], row_count=2)
        assert preview.as_records() == [{"id": 1, "name": "a"}, {"id": 2, "name": None}]


class TestCredential:

    def test_gateway_payload_uses_default_port(self):
        credential = Credential(host="localhost", username="root")
        payload = credential.to_gateway_payload()
        assert payload == {
            "db_type": "mysql",
            "host": "localhost",
            "port": "3306",
            "username": "root",
            "password": "",
        }

    def test_gateway_payload_with_database_and_password(self):
        credential = Credential(
            connection_type=DatabaseEngine.POSTGRESQL,
            host="pg.internal",
            username="etl",
            password="s3cret",
            database="analytics",
        )
        payload = credential.to_gateway_payload()
        assert payload["port"] == "5432"
        assert payload["password"] == "s3cret"
        assert payload["database"] == "analytics"

    def test_password_hidden_in_repr(self):
        credential = Credential(host="h", password="s3cret")
        assert "s3cret" not in repr(credential)

    def test_credential_is_frozen(self):
        credential = Credential(host="h")
        with pytest.raises(ValidationError):
            credential.host = "other"  # type: ignore[misc]

    def test_require_host(self):
        with pytest.raises(StudioValidationError):
            Credential(host="  ").require_host()

    def test_require_database(self):
        with pytest.raises(StudioValidationError):
            Credential(host="h").require_database()
        Credential(host="h", database="world").require_database()


class TestConnection:

    def test_export_masks_password(self):
        connection = Connection(
            id="conn-1",
            name="Prod",
            type=ConnectionRole.SOURCE,
            credential=Credential(host="h", username="u", password="s3cret"),
        )
        exported = connection.to_export_dict()
        assert connection.status == ConnectionStatus.PENDING
        assert exported["credential"]["password"] == "********"
        assert "s3cret" not in str(exported)

    def test_export_without_password(self):
        connection = Connection(id="conn-1", name="Prod", type=ConnectionRole.TARGET, credential=Credential(host="h"))
        assert connection.to_export_dict()["credential"]["password"] is None
