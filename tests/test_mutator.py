import pytest

from statebind.state import StateAccessor, StateId, StateMutator


@pytest.fixture
def Order(make_record_type):
    return make_record_type()


@pytest.fixture
def mutator(store, config, codec):
    return StateMutator(store, config, codec)


@pytest.fixture
def accessor(store, config, codec):
    return StateAccessor(store, config, codec)


@pytest.fixture
def order(Order, store):
    record = Order(name="first", aasm_state="opened")
    assert store.save(record)
    return record


class TestWriteStateWithoutPersistence:

    def test_sets_field_without_saving(self, mutator, accessor, order, store, save_spy):
        mutator.write_state_without_persistence(order, StateId("closed"))

        assert accessor.read_state(order) == StateId("closed")
        assert order["aasm_state"] == "closed"
        assert save_spy == []
        assert store.find(type(order), order.id)["aasm_state"] == "opened"

    def test_idempotent(self, mutator, order, save_spy):
        mutator.write_state_without_persistence(order, StateId("closed"))
        mutator.write_state_without_persistence(order, StateId("closed"))

        assert order["aasm_state"] == "closed"
        assert save_spy == []

    def test_staged_state_becomes_durable_on_next_save(self, mutator, order, store):
        mutator.write_state_without_persistence(order, StateId("closed"))
        assert order.save()

        assert store.find(type(order), order.id)["aasm_state"] == "closed"


class TestWriteState:

    def test_success_is_durable(self, mutator, accessor, order, store, save_spy):
        assert mutator.write_state(order, StateId("closed")) is True

        assert accessor.read_state(order) == StateId("closed")
        assert len(save_spy) == 1
        fresh = store.find(type(order), order.id)
        assert accessor.read_state(fresh) == StateId("closed")

    def test_failed_save_restores_state(self, mutator, accessor, order, store, save_spy):
        store.add_validator(type(order), lambda record: False)

        assert mutator.write_state(order, StateId("closed")) is False

        assert accessor.read_state(order) == StateId("opened")
        assert order["aasm_state"] == "opened"
        assert len(save_spy) == 1
        assert store.find(type(order), order.id)["aasm_state"] == "opened"

    def test_failed_save_leaves_other_fields_alone(self, mutator, order, store):
        store.add_validator(type(order), lambda record: record["name"] != "renamed")
        order["name"] = "renamed"

        assert mutator.write_state(order, StateId("closed")) is False

        assert order["name"] == "renamed"
        assert order["aasm_state"] == "opened"

    def test_failed_save_on_new_record_reads_initial_state_again(self, mutator, accessor, Order, store):
        store.add_validator(Order, lambda record: False)
        order = Order(name="draft")

        assert mutator.write_state(order, StateId("closed")) is False

        assert order["aasm_state"] is None
        assert accessor.read_state(order) == StateId("opened")

    def test_raising_save_restores_and_reraises(self, mutator, order, store, monkeypatch):
        def explode(record):
            raise RuntimeError("disk full")

        monkeypatch.setattr(store, "save", explode)

        with pytest.raises(RuntimeError, match="disk full"):
            mutator.write_state(order, StateId("closed"))
        assert order["aasm_state"] == "opened"

    def test_direct_write_after_failure_passes_through(self, mutator, accessor, order, store):
        store.add_validator(type(order), lambda record: False)
        assert mutator.write_state(order, StateId("closed")) is False

        order["aasm_state"] = "archived"

        assert accessor.read_state(order) == StateId("archived")

    def test_unencodable_state_raises_before_touching_record(self, mutator, order, save_spy):
        with pytest.raises(TypeError):
            mutator.write_state(order, 12)

        assert order["aasm_state"] == "opened"
        assert save_spy == []
