"""
Transformation operation models.

A transformation is a list of tagged operations applied to one table.
Operations are a pydantic discriminated union keyed on ``op`` so plans can
be validated, previewed and serialized before anything is committed.
"""

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from .base_enums import FilterOperator, TransformationOperationType
from .schema_nodes import TablePreview


CAST_TYPES = ("INTEGER", "DECIMAL", "VARCHAR", "BOOLEAN")


class BaseOperation(BaseModel):
    """Fields shared by every operation."""

    column: str = Field(..., min_length=1, description="Column the operation applies to")


class RenameColumn(BaseOperation):
    op: Literal[TransformationOperationType.RENAME] = TransformationOperationType.RENAME
    new_name: str = Field(..., min_length=1, description="New column name")


class CastColumn(BaseOperation):
    op: Literal[TransformationOperationType.CAST] = TransformationOperationType.CAST
    target_type: Literal["INTEGER", "DECIMAL", "VARCHAR", "BOOLEAN"] = Field(..., description="Type to cast to")


class NormalizeColumn(BaseOperation):
    """Trim, collapse inner whitespace and lowercase text values."""
    op: Literal[TransformationOperationType.NORMALIZE] = TransformationOperationType.NORMALIZE


class UppercaseColumn(BaseOperation):
    op: Literal[TransformationOperationType.UPPERCASE] = TransformationOperationType.UPPERCASE


class LowercaseColumn(BaseOperation):
    op: Literal[TransformationOperationType.LOWERCASE] = TransformationOperationType.LOWERCASE


class TrimColumn(BaseOperation):
    op: Literal[TransformationOperationType.TRIM] = TransformationOperationType.TRIM


class FilterRows(BaseOperation):
    """Keep only the rows whose column matches the predicate."""
    op: Literal[TransformationOperationType.FILTER] = TransformationOperationType.FILTER
    operator: FilterOperator = Field(..., description="Comparison operator")
    value: Optional[Any] = Field(default=None, description="Right-hand operand; unused for null checks")


class DropColumn(BaseOperation):
    op: Literal[TransformationOperationType.DROP] = TransformationOperationType.DROP


class FillNull(BaseOperation):
    op: Literal[TransformationOperationType.FILL_NULL] = TransformationOperationType.FILL_NULL
    value: Any = Field(..., description="Replacement for null values")


TransformationOperation = Annotated[
    Union[
        RenameColumn,
        CastColumn,
        NormalizeColumn,
        UppercaseColumn,
        LowercaseColumn,
        TrimColumn,
        FilterRows,
        DropColumn,
        FillNull,
    ],
    Field(discriminator="op"),
]


class TransformationPlan(BaseModel):
    """Operations derived from one instruction against one table."""

    instruction: str = Field(..., description="Original free-text instruction")
    schema_name: str = Field(..., description="Target schema")
    table_name: str = Field(..., description="Target table")
    operations: List[TransformationOperation] = Field(default_factory=list, description="Operations in order")

    @property
    def is_free_form(self) -> bool:
        """True when the interpreter recognised no structured operation."""
        return not self.operations

    def describe(self) -> List[str]:
        return [f"{operation.op.value}({operation.column})" for operation in self.operations]


class TransformationResult(BaseModel):
    """Outcome of a submitted or previewed transformation."""

    success: bool = Field(..., description="Whether the transformation succeeded")
    message: str = Field(..., description="User-facing message")
    plan: Optional[TransformationPlan] = Field(default=None, description="Interpreted plan")
    preview: Optional[TablePreview] = Field(default=None, description="Rows after a dry run")
