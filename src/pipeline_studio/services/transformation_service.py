"""
Transformation Service.

Pairs a free-text instruction with a (schema, table) target:
1. Interpret the instruction into a TransformationPlan (swappable interpreter)
2. Validate the plan against the table's known columns
3. Record the result as processing_result (the previous one is replaced)

preview_transformation() runs the same plan against preview rows as a dry
run and leaves processing_result alone.
"""

from typing import Optional

from ..domain.errors import TransformationError, ValidationError
from ..domain.transformations import TransformationPlan, TransformationResult
from ..repositories.instruction_parser import InstructionInterpreter, RuleBasedInterpreter
from ..repositories.transformation_engine import TransformationEngine
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id
from .notification_service import NotificationCenter
from .schema_service import SchemaBrowserService


logger = get_module_logger()


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def success_message(schema_name: str, table_name: str, instruction: str) -> str:
    return f"Successfully processed transformation on {schema_name}.{table_name} with instruction: {instruction}"


class TransformationService:
    """
    Service for transformation requests.

    Usage:
        service = TransformationService(schema_browser, notifications)
        result = service.process_transformation("uppercase name", "customers", "public")
        dry_run = await service.preview_transformation("uppercase name", "customers", "public", "conn-1")
    """

    def __init__(
        self,
        schema_browser: SchemaBrowserService,
        notifications: NotificationCenter,
        interpreter: Optional[InstructionInterpreter] = None,
        engine: Optional[TransformationEngine] = None,
    ):
        self.schema_browser = schema_browser
        self.notifications = notifications
        self.interpreter: InstructionInterpreter = interpreter or RuleBasedInterpreter()
        self.engine = engine or TransformationEngine()
        self.processing_result: Optional[TransformationResult] = None

        logger.info("TransformationService initialized", interpreter=type(self.interpreter).__name__)

    def _plan(
        self,
        instruction: str,
        table_name: str,
        schema_name: str,
        connection_id: Optional[str],
    ) -> TransformationPlan:
        plan = self.interpreter.interpret(instruction, schema_name, table_name)
        columns = self.schema_browser.known_columns(connection_id, schema_name, table_name)
        self.engine.validate(plan, columns)
        return plan

    def process_transformation(
        self,
        instruction: str,
        table_name: str,
        schema_name: str,
        connection_id: Optional[str] = None,
    ) -> Optional[TransformationResult]:
        """
        Submit an instruction against a table.

        A blank instruction, table or schema is ignored: nothing changes and
        the current processing_result is returned.

        A non-empty instruction from which no operation can be derived is
        accepted as a free-form instruction and succeeds.
        """
        if _is_blank(instruction) or _is_blank(table_name) or _is_blank(schema_name):
            logger.debug("Ignoring incomplete transformation request", trace_id=current_trace_id())
            return self.processing_result

        trace_id = current_trace_id()
        plan: Optional[TransformationPlan] = None
        try:
            plan = self._plan(instruction, table_name, schema_name, connection_id)
        except TransformationError as e:
            logger.warning(
                "Transformation rejected",
                table=f"{schema_name}.{table_name}",
                error_code=e.error_code,
                error=e.message,
                trace_id=trace_id,
            )
            result = TransformationResult(success=False, message=e.message, plan=plan)
            self.processing_result = result
            self.notifications.failure("Transformation failed", e.message)
            return result

        result = TransformationResult(
            success=True,
            message=success_message(schema_name, table_name, instruction),
            plan=plan,
        )
        self.processing_result = result
        self.notifications.success("Transformation processed", result.message)

        logger.info(
            "Transformation processed",
            table=f"{schema_name}.{table_name}",
            operations=plan.describe(),
            trace_id=trace_id,
        )
        return result

    async def preview_transformation(
        self,
        instruction: str,
        table_name: str,
        schema_name: str,
        connection_id: str,
    ) -> TransformationResult:
        """
        Dry run: apply the interpreted plan to preview rows without committing.

        Raises:
            ValidationError: Blank instruction, table or schema
            NotFoundError: Unknown connection
        """
        if _is_blank(instruction) or _is_blank(table_name) or _is_blank(schema_name):
            raise ValidationError("Instruction, table and schema are required")

        try:
            plan = self._plan(instruction, table_name, schema_name, connection_id)
        except TransformationError as e:
            return TransformationResult(success=False, message=e.message)

        fetched = await self.schema_browser.preview_table(connection_id, schema_name, table_name)
        if not fetched.success or fetched.preview is None:
            return TransformationResult(success=False, message=fetched.message, plan=plan)

        try:
            transformed = self.engine.apply(plan, fetched.preview)
        except TransformationError as e:
            logger.warning("Dry run failed", table=f"{schema_name}.{table_name}", error=e.message)
            return TransformationResult(success=False, message=e.message, plan=plan)

        return TransformationResult(
            success=True,
            message=f"Preview of {len(plan.operations)} operation(s) on {schema_name}.{table_name}",
            plan=plan,
            preview=transformed,
        )
