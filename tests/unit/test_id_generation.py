from pipeline_studio.config_constants import IdStrategy
from pipeline_studio.utils.id_generation import IdGenerator


def test_counter_is_per_prefix():
    ids = IdGenerator(IdStrategy.COUNTER)
    assert ids.new_id("conn") == "conn-1"
    assert ids.new_id("table") == "table-1"
    assert ids.new_id("conn") == "conn-2"


def test_uuid_ids_are_unique():
    ids = IdGenerator()
    generated = {ids.new_id("table") for _ in range(500)}
    assert len(generated) == 500
    assert all(value.startswith("table-") for value in generated)


def test_reserve_skips_existing_ids():
    ids = IdGenerator(IdStrategy.COUNTER)
    ids.reserve("table", "table-7")
    assert ids.new_id("table") == "table-8"


def test_reserve_never_moves_backwards():
    ids = IdGenerator(IdStrategy.COUNTER)
    for _ in range(5):
        ids.new_id("table")
    ids.reserve("table", "table-2")
    assert ids.new_id("table") == "table-6"


def test_reserve_ignores_foreign_ids():
    ids = IdGenerator(IdStrategy.COUNTER)
    ids.reserve("table", "transform-9")
    ids.reserve("table", "table-abc")
    assert ids.new_id("table") == "table-1"


def test_reserve_is_noop_for_uuid():
    ids = IdGenerator(IdStrategy.UUID4)
    ids.reserve("table", "table-3")
    assert ids.new_id("table") != "table-4"
