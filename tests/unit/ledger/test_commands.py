"""Tests for TodoCommandHandler and command parsing."""

import asyncio

import pytest

from todo_ledger.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from todo_ledger.fsm.todo_status import TodoStatus
from todo_ledger.ledger.commands import TodoCommandHandler, command_action, render_markdown
from todo_ledger.ledger.contracts import (
    AddCommand,
    ClearResult,
    ItemResult,
    ListCommand,
    ListResult,
    SetStatusCommand,
    UpdateCommand,
    parse_command,
)
from todo_ledger.ledger.events import TodoEventStream, TodoEventType
from todo_ledger.ledger.guard import ConcurrencyGuard
from todo_ledger.ledger.list_store import TodoListStore


class FailingSnapshotStore:
    def save(self, snapshot):
        raise PersistenceError("Permission denied")


@pytest.fixture
def events() -> TodoEventStream:
    return TodoEventStream()


@pytest.fixture
def handler(store: TodoListStore, events: TodoEventStream) -> TodoCommandHandler:
    return TodoCommandHandler(ConcurrencyGuard(store), events)


class TestParseCommand:
    def test_parses_each_action(self):
        assert isinstance(parse_command({"action": "add", "content": "x"}), AddCommand)
        assert isinstance(parse_command({"action": "list"}), ListCommand)
        command = parse_command({"action": "set_status", "id": "a", "status": "completed"})
        assert isinstance(command, SetStatusCommand)
        assert command.status == TodoStatus.COMPLETED

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"action": "explode"},
            {"action": "add"},
            {"action": "set_status", "id": "a", "status": "done"},
            {"action": "remove"},
            {"action": "clear", "force": True},
            {"action": "add", "content": "x", "priority": "high"},
        ],
    )
    def test_malformed_payloads_raise_validation_error(self, payload):
        with pytest.raises(ValidationError):
            parse_command(payload)

    def test_update_distinguishes_null_priority_from_missing(self):
        cleared = parse_command({"action": "update", "id": "a", "priority": None})
        untouched = parse_command({"action": "update", "id": "a", "content": "x"})
        assert isinstance(cleared, UpdateCommand)
        assert cleared.priority_supplied
        assert not untouched.priority_supplied


class TestScenario:
    def test_add_progress_list_remove(self, handler: TodoCommandHandler):
        added = handler.execute({"action": "add", "content": "write tests"})
        assert isinstance(added, ItemResult)
        assert added.item.status == TodoStatus.PENDING
        assert added.item.priority is None
        item_id = added.item.id

        moved = handler.execute({"action": "set_status", "id": item_id, "status": "in_progress"})
        assert moved.item.status == TodoStatus.IN_PROGRESS

        listed = handler.execute({"action": "list"})
        assert isinstance(listed, ListResult)
        assert [i.id for i in listed.items] == [item_id]
        assert listed.version == 2

        removed = handler.execute({"action": "remove", "id": item_id})
        assert removed.item.id == item_id

        listed = handler.execute(ListCommand())
        assert listed.items == []
        assert listed.version == 3

    def test_version_counts_every_mutation_kind(self, handler: TodoCommandHandler):
        a = handler.execute(AddCommand(content="a")).item
        handler.execute({"action": "add", "content": "b"})
        handler.execute({"action": "update", "id": a.id, "content": "a2"})
        handler.execute({"action": "set_status", "id": a.id, "status": "completed"})
        handler.execute({"action": "remove", "id": a.id})
        cleared = handler.execute({"action": "clear"})

        assert isinstance(cleared, ClearResult)
        assert cleared.removed_count == 1
        assert cleared.version == 6

    def test_list_is_idempotent(self, handler: TodoCommandHandler):
        for n in range(3):
            handler.execute({"action": "add", "content": f"task {n}", "priority": 3 - n})
        first = handler.execute({"action": "list"})
        second = handler.execute({"action": "list"})
        assert first == second

    def test_list_status_filter(self, handler: TodoCommandHandler):
        a = handler.execute({"action": "add", "content": "a"}).item
        handler.execute({"action": "add", "content": "b"})
        handler.execute({"action": "set_status", "id": a.id, "status": "completed"})

        done = handler.execute({"action": "list", "status_filter": "completed"})
        assert [i.id for i in done.items] == [a.id]

    def test_update_clears_priority(self, handler: TodoCommandHandler):
        item = handler.execute({"action": "add", "content": "a", "priority": 1}).item
        updated = handler.execute({"action": "update", "id": item.id, "priority": None}).item
        assert updated.priority is None
        assert updated.content == "a"


class TestErrors:
    def test_completed_cannot_return_to_pending(self, handler: TodoCommandHandler):
        item = handler.execute({"action": "add", "content": "a"}).item
        handler.execute({"action": "set_status", "id": item.id, "status": "completed"})

        with pytest.raises(InvalidTransitionError):
            handler.execute({"action": "set_status", "id": item.id, "status": "pending"})

    def test_unknown_id(self, handler: TodoCommandHandler):
        with pytest.raises(NotFoundError):
            handler.execute({"action": "remove", "id": "nope"})

    def test_empty_content(self, handler: TodoCommandHandler):
        with pytest.raises(ValidationError):
            handler.execute({"action": "add", "content": "   "})
        assert handler.guard.version == 0

    def test_conflict_leaves_version(self, handler: TodoCommandHandler):
        item = handler.execute({"action": "add", "content": "a"}).item
        handler.execute({"action": "update", "id": item.id, "content": "b"})
        handler.execute({"action": "set_status", "id": item.id, "status": "in_progress"})
        assert handler.guard.version == 3

        with pytest.raises(ConflictError):
            handler.execute(
                {"action": "update", "id": item.id, "content": "c", "expected_version": 2}
            )
        assert handler.guard.version == 3

    def test_persistence_failure_rolls_back(self, store: TodoListStore, events: TodoEventStream):
        handler = TodoCommandHandler(ConcurrencyGuard(store, FailingSnapshotStore()), events)

        with pytest.raises(PersistenceError):
            handler.execute({"action": "add", "content": "a"})

        assert handler.execute({"action": "list"}).items == []
        assert store.version == 0
        assert events.drain() == []

    def test_unsupported_command_type(self, handler: TodoCommandHandler):
        with pytest.raises(ValidationError):
            handler.execute("add a todo")


class TestDispatch:
    def test_success_envelope(self, handler: TodoCommandHandler):
        response = handler.dispatch({"action": "add", "content": "a"})
        assert response.ok
        assert response.action == "add"
        assert response.result.item.content == "a"
        assert response.error is None

    @pytest.mark.parametrize(
        "payload,kind,retryable",
        [
            ({"action": "add", "content": ""}, "ValidationError", False),
            ({"action": "remove", "id": "nope"}, "NotFoundError", False),
            ({"action": "clear", "expected_version": 7}, "ConflictError", True),
            ({"action": "bogus"}, "ValidationError", False),
        ],
    )
    def test_error_envelopes(self, handler: TodoCommandHandler, payload, kind, retryable):
        response = handler.dispatch(payload)
        assert not response.ok
        assert response.result is None
        assert response.error.kind == kind
        assert response.error.retryable is retryable
        assert response.error.message

    def test_envelope_serializes_to_json(self, handler: TodoCommandHandler):
        handler.dispatch({"action": "add", "content": "a"})
        data = handler.dispatch({"action": "list"}).model_dump(mode="json")
        assert data["ok"] is True
        assert data["result"]["version"] == 1
        assert data["result"]["items"][0]["status"] == "pending"

    def test_command_action(self):
        assert command_action({"action": "add"}) == "add"
        assert command_action({"action": 3}) is None
        assert command_action(ListCommand()) == "list"


class TestEvents:
    def test_every_mutation_emits_one_event(self, handler: TodoCommandHandler, events):
        item = handler.execute({"action": "add", "content": "write tests"}).item
        handler.execute({"action": "update", "id": item.id, "content": "write more tests"})
        handler.execute({"action": "set_status", "id": item.id, "status": "in_progress"})
        handler.execute({"action": "list"})
        handler.execute({"action": "remove", "id": item.id})
        handler.execute({"action": "clear"})

        emitted = events.drain()
        assert [e.event_type for e in emitted] == [
            TodoEventType.TODO_CREATED,
            TodoEventType.TODO_UPDATED,
            TodoEventType.TODO_STATUS_CHANGED,
            TodoEventType.TODO_REMOVED,
            TodoEventType.TODOS_CLEARED,
        ]
        assert [e.version for e in emitted] == [1, 2, 3, 4, 5]
        assert emitted[0].message == "Created todo: write tests"
        assert emitted[1].message == (
            "Updated todo from 'write tests (pending)' to 'write more tests (pending)'"
        )
        assert emitted[2].message == (
            "Updated todo from 'write more tests (pending)' to 'write more tests (in_progress)'"
        )
        assert emitted[4].message == "Cleared 0 todo(s)."
        assert emitted[0].item_id == item.id

    def test_failed_commands_emit_nothing(self, handler: TodoCommandHandler, events):
        handler.dispatch({"action": "remove", "id": "nope"})
        handler.dispatch({"action": "add", "content": ""})
        assert events.drain() == []


class TestAsyncExecution:
    @pytest.mark.asyncio
    async def test_concurrent_adds(self, handler: TodoCommandHandler):
        results = await asyncio.gather(
            *(handler.aexecute({"action": "add", "content": f"task {n}"}) for n in range(10))
        )
        assert sorted(r.version for r in results) == list(range(1, 11))
        listed = await handler.aexecute({"action": "list"})
        assert len(listed.items) == 10

    @pytest.mark.asyncio
    async def test_adispatch_reports_errors(self, handler: TodoCommandHandler):
        response = await handler.adispatch({"action": "set_status", "id": "x", "status": "completed"})
        assert not response.ok
        assert response.error.kind == "NotFoundError"


class TestResponseText:
    def test_empty_list_text(self, handler: TodoCommandHandler):
        response = handler.dispatch({"action": "list"})
        assert response.text == "No todos found."

    def test_mutation_text_shows_committed_list(self, handler: TodoCommandHandler):
        first = handler.dispatch({"action": "add", "content": "write tests", "priority": 1})
        item_id = first.result.item.id
        assert first.text == f"Current todos:\n\n[ ] write tests (priority 1) (ID: {item_id})"

        second = handler.dispatch({"action": "add", "content": "ship it"})
        other_id = second.result.item.id
        assert second.text.splitlines()[2:] == [
            f"[ ] write tests (priority 1) (ID: {item_id})",
            f"[ ] ship it (ID: {other_id})",
        ]

        done = handler.dispatch({"action": "set_status", "id": item_id, "status": "completed"})
        assert f"[x] write tests (priority 1) (ID: {item_id})" in done.text

        cleared = handler.dispatch({"action": "clear"})
        assert cleared.text == "No todos found."

    def test_list_text_respects_filter(self, handler: TodoCommandHandler):
        handler.dispatch({"action": "add", "content": "a"})
        b = handler.dispatch({"action": "add", "content": "b"}).result.item
        handler.dispatch({"action": "set_status", "id": b.id, "status": "in_progress"})

        response = handler.dispatch({"action": "list", "status_filter": "in_progress"})
        assert response.text.splitlines()[2:] == [f"[~] b (ID: {b.id})"]

    def test_failed_response_has_no_text(self, handler: TodoCommandHandler):
        response = handler.dispatch({"action": "remove", "id": "nope"})
        assert response.text is None

    @pytest.mark.asyncio
    async def test_adispatch_text(self, handler: TodoCommandHandler):
        response = await handler.adispatch({"action": "add", "content": "async task"})
        assert response.text.startswith("Current todos:")
        assert "async task" in response.text

    def test_render_markdown_empty(self):
        assert render_markdown([]) == "No todos found."


class TestStrictPriority:
    @pytest.mark.parametrize("priority", [True, False, "2", 1.5])
    def test_non_integer_priority_rejected(self, handler: TodoCommandHandler, priority):
        response = handler.dispatch({"action": "add", "content": "a", "priority": priority})
        assert not response.ok
        assert response.error.kind == "ValidationError"
        assert handler.guard.version == 0

    def test_bool_priority_rejected_on_update(self, handler: TodoCommandHandler):
        item = handler.execute({"action": "add", "content": "a"}).item
        with pytest.raises(ValidationError):
            handler.execute({"action": "update", "id": item.id, "priority": True})

    def test_negative_priority_rejected_at_parse(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_command({"action": "add", "content": "a", "priority": -1})
        assert exc_info.value.field == "add.priority"
