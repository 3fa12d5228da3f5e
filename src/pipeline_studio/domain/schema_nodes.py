from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


class ColumnNode(BaseModel):
    """Represents one column of a table."""

    name: str = Field(..., description="Name of the column")
    type: str = Field(default="VARCHAR", description="Free-text data type")
    nullable: bool = Field(default=True, description="Indicates if the column can contain null values")
    is_primary_key: bool = Field(default=False, description="Indicates if the column is a primary key")
    is_foreign_key: bool = Field(default=False, description="Indicates if the column is a foreign key")
    references: Optional[str] = Field(default=None, description="Referenced column as 'table.column'")

    @field_validator("references")
    @classmethod
    def _check_reference_format(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value.count(".") != 1:
            raise ValueError("references must look like 'table.column'")
        return value


class ForeignKey(BaseModel):
    """Foreign key constraint of a table."""

    columns: List[str] = Field(..., min_length=1, description="Referencing columns")
    referenced_table: str = Field(..., description="Referenced table")
    referenced_columns: List[str] = Field(..., min_length=1, description="Referenced columns")


class TableNode(BaseModel):
    """Represents a database table; column order is display order."""

    name: str = Field(..., description="Name of the table")
    schema_name: str = Field(default="public", description="Schema to which the table belongs")
    columns: List[ColumnNode] = Field(default_factory=list, description="Columns in display order")
    primary_key: List[str] = Field(default_factory=list, description="Primary key column names")
    foreign_keys: List[ForeignKey] = Field(default_factory=list, description="Foreign key constraints")

    def column(self, name: str) -> Optional[ColumnNode]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]


class SchemaNode(BaseModel):
    """A named schema holding an ordered list of tables."""

    name: str = Field(..., description="Schema name")
    tables: List[TableNode] = Field(default_factory=list, description="Tables in display order")

    def table(self, name: str) -> Optional[TableNode]:
        for table in self.tables:
            if table.name == name:
                return table
        return None


class TableSelection(BaseModel):
    """The schema/table pair currently active in the browser."""

    schema_name: str = Field(..., description="Selected schema")
    table_name: str = Field(..., description="Selected table")

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.table_name}"


class TablePreview(BaseModel):
    """A bounded sample of table rows."""

    schema_name: Optional[str] = Field(default=None, description="Schema of the previewed table")
    table_name: str = Field(..., description="Previewed table")
    columns: List[str] = Field(default_factory=list, description="Column names in row order")
    rows: List[List[Any]] = Field(default_factory=list, description="Row values aligned with columns")
    row_count: int = Field(default=0, description="Number of rows returned")
    truncated: bool = Field(default=False, description="True when the gateway returned more than the limit")

    def as_records(self) -> List[dict]:
        return [dict(zip(self.columns, row)) for row in self.rows]


class SchemaFetchResult(BaseModel):
    """Outcome of a schema fetch for one connection."""

    success: bool = Field(..., description="Whether the fetch succeeded")
    message: str = Field(..., description="User-facing message")
    schemas: List[SchemaNode] = Field(default_factory=list, description="Schemas now cached for the connection")
    stale: bool = Field(default=False, description="True when a newer fetch already replaced this response")


class TablePreviewResult(BaseModel):
    """Outcome of a preview or sample-data request."""

    success: bool = Field(..., description="Whether the preview was fetched")
    message: str = Field(..., description="User-facing message")
    preview: Optional[TablePreview] = Field(default=None, description="Preview rows on success")
