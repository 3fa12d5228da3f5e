"""
Transformation Engine Repository.

Validates a TransformationPlan against the columns of its table and applies
it to preview rows. Nothing here touches a database: apply() is the dry run
behind "preview before commit".

Validation walks the operations in order and tracks the column set as it
evolves, so "rename a to b; uppercase b" is valid and "drop a; trim a" is not.
"""

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence

from ..domain.base_enums import FilterOperator, TransformationOperationType
from ..domain.errors import TransformationError
from ..domain.schema_nodes import TablePreview
from ..domain.transformations import TransformationOperation, TransformationPlan
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id


logger = get_module_logger()

_TRUE_STRINGS = {"true", "t", "yes", "y", "1"}
_FALSE_STRINGS = {"false", "f", "no", "n", "0"}


def _finite_decimal(value: Any, kind: str) -> Decimal:
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"not {kind}: {value!r}") from e
    if not number.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return number


def _cast_value(value: Any, target_type: str) -> Any:
    if value is None:
        return None
    if target_type == "VARCHAR":
        return str(value)
    if target_type == "BOOLEAN":
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if target_type == "INTEGER":
        if isinstance(value, bool):
            return int(value)
        return int(_finite_decimal(value, "an integer"))
    if target_type == "DECIMAL":
        number = float(_finite_decimal(value, "a decimal"))
        if not math.isfinite(number):
            raise ValueError(f"out of range for a decimal: {value!r}")
        return number
    raise ValueError(f"unsupported type: {target_type}")


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(_finite_decimal(value, "a number"))
    except (ValueError, OverflowError):
        return None


def matches(cell: Any, operator: FilterOperator, value: Any) -> bool:
    """
    Evaluate a filter predicate for one cell.

    Numbers compare numerically when both sides look numeric; otherwise
    values compare as text. Ordering comparisons never match a null cell.
    """
    if operator == FilterOperator.IS_NULL:
        return cell is None
    if operator == FilterOperator.NOT_NULL:
        return cell is not None
    if operator == FilterOperator.CONTAINS:
        return cell is not None and str(value).lower() in str(cell).lower()

    left_num, right_num = _as_number(cell), _as_number(value)
    if left_num is not None and right_num is not None:
        left, right = left_num, right_num
    else:
        left, right = ("" if cell is None else str(cell)), ("" if value is None else str(value))

    if operator == FilterOperator.EQ:
        return cell is not None and left == right
    if operator == FilterOperator.NE:
        return cell is None or left != right
    if cell is None:
        return False
    if operator == FilterOperator.GT:
        return left > right
    if operator == FilterOperator.GE:
        return left >= right
    if operator == FilterOperator.LT:
        return left < right
    return left <= right


class TransformationEngine:
    """
    Plan validation and dry-run execution.

    Usage:
        engine = TransformationEngine()
        engine.validate(plan, ["id", "name"])
        transformed = engine.apply(plan, preview)
    """

    def validate(self, plan: TransformationPlan, columns: Optional[Sequence[str]]) -> List[str]:
        """
        Check every operation references a column that exists at that step.

        Args:
            plan: Plan to check
            columns: Known columns of the table; None skips the check

        Returns:
            Column names after the plan is applied (or [] when unknown)

        Raises:
            TransformationError: Unknown column or rename collision
        """
        if columns is None:
            logger.debug("Column list unknown, skipping plan validation", table=plan.table_name)
            return []

        current = list(columns)
        for index, operation in enumerate(plan.operations):
            if operation.column not in current:
                raise TransformationError(
                    f"Column '{operation.column}' does not exist in {plan.schema_name}.{plan.table_name}",
                    details={"step": index, "operation": operation.op.value, "column": operation.column},
                )
            if operation.op == TransformationOperationType.RENAME:
                if operation.new_name in current and operation.new_name != operation.column:
                    raise TransformationError(
                        f"Cannot rename '{operation.column}' to existing column '{operation.new_name}'",
                        details={"step": index, "column": operation.column},
                    )
                current[current.index(operation.column)] = operation.new_name
            elif operation.op == TransformationOperationType.DROP:
                current.remove(operation.column)
        return current

    def apply(self, plan: TransformationPlan, preview: TablePreview) -> TablePreview:
        """
        Apply a plan to preview rows and return the transformed preview.

        The input preview is not modified.

        Raises:
            TransformationError: Validation failure or a value that can not be cast
        """
        columns = self.validate(plan, preview.columns)
        records: List[Dict[str, Any]] = preview.as_records()

        for index, operation in enumerate(plan.operations):
            records = self._apply_operation(index, operation, records)

        logger.info(
            "Plan applied to preview",
            table=f"{plan.schema_name}.{plan.table_name}",
            rows_in=len(preview.rows),
            rows_out=len(records),
            trace_id=current_trace_id(),
        )
        return TablePreview(
            schema_name=preview.schema_name,
            table_name=preview.table_name,
            columns=columns,
            rows=[[record.get(column) for column in columns] for record in records],
            row_count=len(records),
            truncated=preview.truncated,
        )

    def _apply_operation(
        self,
        index: int,
        operation: TransformationOperation,
        records: List[Dict[str, Any]],
    ) -> List[Dict[str, Any]]:
        column = operation.column
        op = operation.op

        if op == TransformationOperationType.FILTER:
            return [record for record in records if matches(record.get(column), operation.operator, operation.value)]

        result = []
        for row_number, record in enumerate(records):
            record = dict(record)
            value = record.get(column)

            if op == TransformationOperationType.RENAME:
                record[operation.new_name] = record.pop(column, None)
            elif op == TransformationOperationType.DROP:
                record.pop(column, None)
            elif op == TransformationOperationType.FILL_NULL:
                if value is None:
                    record[column] = operation.value
            elif op == TransformationOperationType.CAST:
                try:
                    record[column] = _cast_value(value, operation.target_type)
                except (ValueError, OverflowError) as e:
                    raise TransformationError(
                        f"Cannot cast '{column}' to {operation.target_type} in row {row_number + 1}: {e}",
                        details={"step": index, "column": column, "row": row_number + 1},
                    ) from e
            elif isinstance(value, str):
                if op == TransformationOperationType.UPPERCASE:
                    record[column] = value.upper()
                elif op == TransformationOperationType.LOWERCASE:
                    record[column] = value.lower()
                elif op == TransformationOperationType.TRIM:
                    record[column] = value.strip()
                elif op == TransformationOperationType.NORMALIZE:
                    record[column] = re.sub(r"\s+", " ", value).strip().lower()

            result.append(record)
        return result
