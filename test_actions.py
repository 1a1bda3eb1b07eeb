"""
test_actions.py

Unit tests for the Action / ActionTrace primitives and the recorder.

Tests prove:
- Validation (closed tag set, tuple payloads of plain values)
- Immutability (cannot modify after creation)
- Deterministic serialization (identical content -> identical trace_id)
- Chronological order is the reverse of the playback stack
- Pending records settle into the right actions
"""

import json

import pytest

from treetrace.actions import (
    Action,
    ActionTrace,
    ColorChange,
    InvalidActionError,
    Operation,
    OperationTag,
    TraceImmutabilityError,
    TraceValidationError,
)
from treetrace.errors import InvariantViolationError
from treetrace.nodes import Color, PlainNode, Variant
from treetrace.recorder import PendingResize, PendingRotation, TraceRecorder
from treetrace.snapshot import take_snapshot


# =============================================================================
# Helper Fixtures
# =============================================================================

@pytest.fixture
def snapshot():
    return take_snapshot(PlainNode(10, PlainNode(5)), Variant.BST)


@pytest.fixture
def sample_trace(snapshot):
    """A small delete trace."""
    return ActionTrace(
        Variant.BST,
        Operation.DELETE,
        5,
        (
            Action(OperationTag.DESCEND_LEFT, (5, 10)),
            Action(OperationTag.MATCH_FOR_DELETE, (5,)),
            Action(OperationTag.REMOVE_LEAF, (5,)),
            Action(OperationTag.RESIZE, (False, snapshot)),
            Action(OperationTag.END_OF_SEQUENCE, ("Deletion complete.",)),
        ),
    )


# =============================================================================
# SECTION 1: Action Validation
# =============================================================================

class TestActionValidation:
    """Only known tags and plain payloads are accepted."""

    def test_tag_must_be_operation_tag(self):
        with pytest.raises(InvalidActionError) as exc_info:
            Action("descend-left", (1, 2))
        assert exc_info.value.error_code == "T001"

    def test_payload_must_be_tuple(self):
        with pytest.raises(InvalidActionError):
            Action(OperationTag.RESIZE, [1])

    def test_live_nodes_are_rejected(self):
        with pytest.raises(InvalidActionError) as exc_info:
            Action(OperationTag.CREATE_TREE, (PlainNode(1),))
        assert "PlainNode" in str(exc_info.value)

    def test_color_change_and_snapshot_are_accepted(self, snapshot):
        action = Action(
            OperationTag.ROTATE_LEFT,
            (10, 20, None, None, snapshot),
        )
        assert action.snapshot is snapshot
        change = ColorChange(3, Color.RED)
        assert Action(OperationTag.SIBLING_RECOLOR, (change,)).color_changes == (change,)

    def test_str(self, snapshot):
        assert str(Action(OperationTag.DESCEND_LEFT, (5, 10))) == "descend-left(5, 10)"
        assert str(Action(OperationTag.RESIZE, (True, snapshot))) == "resize(True, <snapshot>)"

    def test_tag_values_are_unique(self):
        values = [tag.value for tag in OperationTag]
        assert len(values) == len(set(values)) == 33


# =============================================================================
# SECTION 2: ActionTrace
# =============================================================================

class TestActionTrace:
    """Test trace construction, order and queries."""

    def test_bad_variant_raises(self):
        with pytest.raises(TraceValidationError) as exc_info:
            ActionTrace("bst", Operation.INSERT, 1, ())
        assert exc_info.value.error_code == "T002"

    def test_non_action_raises_with_index(self):
        with pytest.raises(InvalidActionError) as exc_info:
            ActionTrace(
                Variant.BST, Operation.INSERT, 1,
                (Action(OperationTag.RESIZE), "resize"),
            )
        assert exc_info.value.index == 1

    def test_from_stack_reverses(self):
        first = Action(OperationTag.RESIZE)
        last = Action(OperationTag.END_OF_SEQUENCE, ("done",))
        trace = ActionTrace.from_stack(
            [last, first], variant=Variant.BST, operation=Operation.INSERT, key=1,
        )
        assert trace.first() == first
        assert trace.last() == last

    def test_stack_reversed_is_chronological(self, sample_trace):
        assert list(reversed(sample_trace.to_stack())) == list(sample_trace)

    def test_to_stack_pops_in_replay_order(self, sample_trace):
        stack = sample_trace.to_stack()
        assert stack.pop().tag is OperationTag.DESCEND_LEFT

    def test_created(self):
        trace = ActionTrace.created(Variant.AVL, 42)
        assert trace.operation is Operation.CREATE
        assert trace.tags == (OperationTag.CREATE_TREE,)
        assert trace[0].payload == (42,)

    def test_queries(self, sample_trace, snapshot):
        assert len(sample_trace) == 5
        assert sample_trace.count(OperationTag.REMOVE_LEAF) == 1
        assert sample_trace.find_all(OperationTag.ROTATE_LEFT) == ()
        assert sample_trace.final_snapshot() == snapshot

    def test_str_lists_numbered_actions(self, sample_trace):
        text = str(sample_trace)
        assert text.startswith("ActionTrace (BST, delete 5, 5 actions):")
        assert "  2. match-for-delete(5)" in text


class TestImmutability:
    """ActionTrace cannot be modified after creation."""

    def test_cannot_set_attribute(self, sample_trace):
        with pytest.raises(TraceImmutabilityError):
            sample_trace._actions = ()

    def test_cannot_delete_attribute(self, sample_trace):
        with pytest.raises(TraceImmutabilityError):
            del sample_trace._key

    def test_actions_are_frozen(self, sample_trace):
        with pytest.raises(AttributeError):
            sample_trace[0].payload = ()


# =============================================================================
# SECTION 3: Deterministic Serialization
# =============================================================================

class TestSerialization:
    """Identical content gives identical JSON and trace_id."""

    def test_trace_id_is_sha256_hex(self, sample_trace):
        assert len(sample_trace.trace_id) == 64
        int(sample_trace.trace_id, 16)

    def test_identical_content_same_id(self, sample_trace):
        copy = ActionTrace(
            sample_trace.variant,
            sample_trace.operation,
            sample_trace.key,
            sample_trace.actions,
        )
        assert copy.trace_id == sample_trace.trace_id
        assert copy == sample_trace
        assert hash(copy) == hash(sample_trace)

    def test_different_key_different_id(self):
        a = ActionTrace.created(Variant.BST, 1)
        b = ActionTrace.created(Variant.BST, 2)
        assert a.trace_id != b.trace_id

    def test_json_keys_sorted(self, sample_trace):
        data = json.loads(sample_trace.to_json())
        assert list(data.keys()) == sorted(data.keys())
        assert data["variant"] == "bst"
        assert data["actions"][3]["payload"][1]["type"] == "snapshot"

    def test_json_round_trip(self, sample_trace):
        restored = ActionTrace.from_json(sample_trace.to_json(indent=2))
        assert restored == sample_trace
        assert list(restored) == list(sample_trace)

    def test_from_dict_rejects_unknown_tag(self, sample_trace):
        data = sample_trace.to_dict()
        data["actions"][2]["tag"] = "teleport"
        with pytest.raises(InvalidActionError) as exc_info:
            ActionTrace.from_dict(data)
        assert exc_info.value.index == 2


# =============================================================================
# SECTION 4: Recorder
# =============================================================================

class TestTraceRecorder:
    """Test emission order, pending settlement and finishing."""

    @pytest.fixture
    def recorder(self):
        return TraceRecorder(Variant.BST, Operation.INSERT, 5)

    def test_emit_first_goes_to_front(self, recorder):
        recorder.emit(OperationTag.DESCEND_LEFT, 5, 10)
        recorder.emit_first(OperationTag.RESIZE, 2)
        trace = recorder.finish("done")
        assert trace.tags == (
            OperationTag.RESIZE,
            OperationTag.DESCEND_LEFT,
            OperationTag.END_OF_SEQUENCE,
        )

    def test_lead_resize_plays_first(self, recorder):
        recorder.emit(OperationTag.DESCEND_LEFT, 5, 10)
        trace = recorder.finish("done", lead_resize=True)
        assert trace.first() == Action(OperationTag.RESIZE, ())
        assert trace.last() == Action(OperationTag.END_OF_SEQUENCE, ("done",))

    def test_note_height(self, recorder):
        recorder.note_height(PlainNode(10, PlainNode(5)))
        assert recorder.finish("done").first() == Action(OperationTag.RESIZE, (2,))

    def test_settle_resize_with_tree(self, recorder):
        root = PlainNode(10)
        recorder.settle(PendingResize(True), root)
        action = recorder.finish("done").first()
        assert action.payload[0] is True
        assert list(action.snapshot.keys()) == [10]

    def test_settle_resize_on_empty_tree(self, recorder):
        recorder.settle(PendingResize(False), None)
        assert recorder.finish("done").first() == Action(OperationTag.RESIZE, (False, None))

    def test_settle_rotation(self, recorder):
        root = PlainNode(20, PlainNode(10))
        pending = PendingRotation(OperationTag.ROTATE_RIGHT, 30, 20, None)
        recorder.settle(pending, root, parent_key=40)
        action = recorder.finish("done").first()
        assert action.tag is OperationTag.ROTATE_RIGHT
        assert action.payload[:4] == (30, 20, None, 40)
        assert list(action.snapshot.keys()) == [10, 20]

    def test_settle_none_is_noop(self, recorder):
        recorder.settle(None, PlainNode(1))
        assert len(recorder) == 0

    def test_rotation_record_needs_rotation_tag(self):
        with pytest.raises(InvariantViolationError):
            PendingRotation(OperationTag.RESIZE, 1, 2)

    def test_finish_twice_raises(self, recorder):
        recorder.finish("done")
        with pytest.raises(InvariantViolationError):
            recorder.finish("done")
