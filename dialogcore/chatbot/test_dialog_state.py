"""
Unit Tests for the Conversation State Machine
============================================
"""

import pytest

from dialogcore.chatbot.dialog_state import (
    ConversationState, DialogueStateMachine, TransitionTable,
    DEFAULT_TRANSITIONS, RESET_TRIGGER, default_transition_table
)
from dialogcore.error_handling import ErrorCategory, ErrorTracker, TransitionConflictError

S = ConversationState


@pytest.fixture
def machine():
    return DialogueStateMachine()


@pytest.fixture
def jump_machine():
    """Machine whose table can reach every state from IDLE with 'go_<state>'."""
    table = TransitionTable([(S.IDLE, f"go_{state.name}", state) for state in S if state != S.IDLE])
    return DialogueStateMachine(table=table)


class TestTransitionTable:
    """Test table construction."""

    def test_default_table(self):
        table = default_transition_table()

        assert len(table) == len(DEFAULT_TRANSITIONS)
        assert table.get(S.IDLE, "greeting") == S.GREETING
        assert table.get(S.CLOSING, "farewell") == S.IDLE
        assert table.get(S.IDLE, "nonsense") is None
        assert default_transition_table() is table

    def test_conflicting_rows_rejected(self):
        with pytest.raises(TransitionConflictError):
            TransitionTable([(S.IDLE, "greeting", S.GREETING), (S.IDLE, "greeting", S.ADVICE)])

    def test_repeated_identical_rows_rejected(self):
        with pytest.raises(TransitionConflictError) as exc_info:
            TransitionTable([(S.IDLE, "greeting", S.GREETING), (S.IDLE, "greeting", S.GREETING)])
        assert exc_info.value.metadata["intent"] == "greeting"

    def test_intents_from_in_table_order(self):
        intents = default_transition_table().intents_from(S.GREETING)

        assert intents == ["wellbeing_response", "continue", "homework_help", "farewell"]


class TestDialogueStateMachine:
    """Test transitions and the wildcard policy."""

    def test_starts_idle(self, machine):
        assert machine.state == S.IDLE
        assert machine.state_name == "idle"
        assert machine.state_description == "Waiting for user input"

    def test_greeting_from_idle(self, machine):
        assert machine.process_intent("greeting") == S.GREETING

    def test_explicit_path(self, machine):
        machine.process_intent("greeting")
        machine.process_intent("homework_help")
        assert machine.state == S.HOMEWORK_HELP

        machine.process_intent("continue")
        assert machine.state == S.GENERAL_CHAT

    def test_farewell_closes_from_every_open_state(self, jump_machine):
        for state in S:
            if state in (S.IDLE, S.CLOSING):
                continue
            jump_machine.reset()
            jump_machine.process_intent(f"go_{state.name}")
            assert jump_machine.state == state

            assert jump_machine.process_intent("farewell") == S.CLOSING

    def test_farewell_rows_for_closing_and_idle(self, machine):
        assert machine.process_intent("farewell") == S.CLOSING
        assert machine.process_intent("farewell") == S.IDLE

    def test_farewell_without_row_keeps_closing(self, jump_machine):
        jump_machine.process_intent("go_CLOSING")

        assert jump_machine.process_intent("farewell") == S.CLOSING

    def test_unknown_intent_goes_to_unknown_state(self, machine):
        assert machine.process_intent("unknown") == S.UNKNOWN
        assert machine.process_intent("farewell") == S.CLOSING

    def test_unregistered_intent_self_loops(self, machine):
        machine.process_intent("greeting")

        assert machine.process_intent("definitely_not_an_intent") == S.GREETING
        assert machine.process_intent("") == S.GREETING

    def test_resolve_does_not_commit(self, machine):
        assert machine.resolve("greeting") == S.GREETING
        assert machine.state == S.IDLE

    def test_should_continue_and_supportive(self, machine):
        assert not machine.should_continue()

        machine.process_intent("mental_health_support")
        assert machine.should_continue()
        assert machine.is_supportive()

        machine.process_intent("advice")
        assert not machine.is_supportive()

        machine.process_intent("farewell")
        assert not machine.should_continue()

    def test_available_transitions(self, machine):
        assert machine.available_transitions()[0] == "greeting"
        assert machine.is_valid_transition("gaming")
        assert not machine.is_valid_transition("continue")

    def test_state_data_cleared_by_reset(self, machine):
        machine.process_intent("gaming")
        machine.set_state_data("game", "minecraft")
        assert machine.get_state_data("game") == "minecraft"
        assert machine.get_state_data("missing", "x") == "x"

        machine.reset()

        assert machine.state == S.IDLE
        assert machine.get_state_data("game") is None


class TestStateChangeListeners:
    """Test change notifications."""

    def test_listener_receives_changes(self, machine):
        changes = []
        machine.add_listener(changes.append)

        machine.process_intent("greeting")
        machine.process_intent("greeting")  # self-loop, no event

        assert len(changes) == 1
        assert changes[0].previous == S.IDLE
        assert changes[0].current == S.GREETING
        assert changes[0].trigger == "greeting"

    def test_reset_always_notifies(self, machine):
        changes = []
        machine.add_listener(changes.append)

        machine.reset()
        machine.process_intent("gaming")
        machine.reset()

        reset_events = [c for c in changes if c.trigger == RESET_TRIGGER]
        assert len(reset_events) == 2
        assert all(c.previous == S.IDLE and c.current == S.IDLE for c in reset_events)

    def test_remove_listener(self, machine):
        changes = []
        machine.add_listener(changes.append)
        machine.remove_listener(changes.append)
        machine.remove_listener(changes.append)

        machine.process_intent("greeting")

        assert changes == []

    def test_failing_listener_is_recorded(self):
        tracker = ErrorTracker()
        machine = DialogueStateMachine(error_tracker=tracker)
        received = []

        def broken(change):
            raise RuntimeError("listener down")

        machine.add_listener(broken)
        machine.add_listener(received.append)

        assert machine.process_intent("greeting") == S.GREETING
        assert len(received) == 1
        assert tracker.get_error_statistics() == {"RuntimeError": 1}
        assert tracker.errors_by_category(ErrorCategory.LISTENER)[0].context_data["trigger"] == "greeting"

    def test_failing_listener_without_tracker(self, machine):
        def broken(change):
            raise ValueError("boom")

        machine.add_listener(broken)

        assert machine.process_intent("gaming") == S.GAMING


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
