"""
Unit tests for TransformationService.
"""

import pytest

from pipeline_studio.domain.errors import ValidationError
from pipeline_studio.domain.transformations import TransformationPlan
from pipeline_studio.services.transformation_service import TransformationService, success_message


class RecordingInterpreter:
    """Interpreter stub that records calls and returns free-form plans."""

    def __init__(self):
        self.calls = []

    def interpret(self, instruction, schema_name, table_name):
        self.calls.append(instruction)
        return TransformationPlan(instruction=instruction, schema_name=schema_name, table_name=table_name)


async def _demo_connection(service, registry, make_draft):
    connection_id = registry.add(make_draft(host="localhost", username="root", database="sakila")).id
    await service.schema_browser.fetch_schemas(connection_id)
    return connection_id


class TestProcessTransformation:

    @pytest.mark.asyncio
    async def test_any_instruction_succeeds(self, transformation_service, notifications):
        result = transformation_service.process_transformation("make it tidy", "customers", "public")

        assert result.success
        assert result.message == success_message("public", "customers", "make it tidy")
        assert result.plan.is_free_form
        assert transformation_service.processing_result is result
        assert notifications.latest().title == "Transformation processed"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "instruction,table,schema",
        [("", "customers", "public"), ("   ", "customers", "public"), ("trim name", "", "public"), ("trim name", "customers", "")],
    )
    async def test_blank_input_changes_nothing(self, transformation_service, instruction, table, schema):
        previous = transformation_service.process_transformation("uppercase name", "customers", "public")

        result = transformation_service.process_transformation(instruction, table, schema)

        assert result is previous
        assert transformation_service.processing_result is previous

    @pytest.mark.asyncio
    async def test_blank_input_before_any_result(self, transformation_service):
        assert transformation_service.process_transformation("", "customers", "public") is None
        assert transformation_service.processing_result is None

    @pytest.mark.asyncio
    async def test_result_replaces_previous(self, transformation_service):
        transformation_service.process_transformation("trim name", "customers", "public")
        second = transformation_service.process_transformation("uppercase name", "orders", "public")

        assert transformation_service.processing_result is second
        assert second.plan.table_name == "orders"

    @pytest.mark.asyncio
    async def test_unknown_column_fails_when_columns_known(
        self, transformation_service, registry, make_draft, notifications
    ):
        connection_id = await _demo_connection(transformation_service, registry, make_draft)

        result = transformation_service.process_transformation("trim nickname", "customers", "public", connection_id)

        assert not result.success
        assert result.message == "Column 'nickname' does not exist in public.customers"
        assert transformation_service.processing_result is result
        assert notifications.latest().title == "Transformation failed"

    @pytest.mark.asyncio
    async def test_parse_error_fails(self, transformation_service):
        result = transformation_service.process_transformation("filter where total >", "orders", "public")

        assert not result.success
        assert "needs a value" in result.message

    @pytest.mark.asyncio
    async def test_interpreter_is_swappable(self, schema_browser, notifications):
        interpreter = RecordingInterpreter()
        service = TransformationService(schema_browser, notifications, interpreter=interpreter)

        result = service.process_transformation("uppercase name", "customers", "public")

        assert interpreter.calls == ["uppercase name"]
        assert result.plan.operations == []


class TestPreviewTransformation:

    @pytest.mark.asyncio
    async def test_dry_run(self, transformation_service, registry, make_draft):
        connection_id = await _demo_connection(transformation_service, registry, make_draft)

        result = await transformation_service.preview_transformation(
            "uppercase name; filter where id <= 2", "customers", "public", connection_id
        )

        assert result.success
        assert result.message == "Preview of 2 operation(s) on public.customers"
        assert [row[1] for row in result.preview.rows] == ["JOHN DOE", "JANE SMITH"]
        assert transformation_service.processing_result is None

    @pytest.mark.asyncio
    async def test_dry_run_requires_input(self, transformation_service):
        with pytest.raises(ValidationError):
            await transformation_service.preview_transformation("", "customers", "public", "conn-1")

    @pytest.mark.asyncio
    async def test_dry_run_reports_fetch_failure(self, transformation_service, registry, make_draft):
        connection_id = registry.add(make_draft(host="unreachable.example", username="x")).id

        result = await transformation_service.preview_transformation("trim name", "customers", "public", connection_id)

        assert not result.success
        assert result.plan is not None
        assert result.message.startswith("Unable to fetch table preview")

    @pytest.mark.asyncio
    async def test_dry_run_reports_non_finite_cast(self, transformation_service, registry, make_draft, fake_gateway):
        fake_gateway.rows([{"id": 1, "total": "Infinity"}])
        connection_id = registry.add(make_draft(database="shop")).id

        result = await transformation_service.preview_transformation(
            "cast total as int", "orders", "public", connection_id
        )

        assert not result.success
        assert "Cannot cast 'total' to INTEGER in row 1" in result.message

    @pytest.mark.asyncio
    async def test_dry_run_reports_invalid_plan(self, transformation_service, registry, make_draft):
        connection_id = await _demo_connection(transformation_service, registry, make_draft)

        result = await transformation_service.preview_transformation("trim nickname", "customers", "public", connection_id)

        assert not result.success
        assert result.preview is None
