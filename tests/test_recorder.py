import pytest

from doppel.domain import Raises, Returns, ReturnsSequence
from doppel.recorder import CallRecorder
from doppel.responses import ResponseTable


@pytest.fixture
def recorder():
    return CallRecorder()


@pytest.fixture
def responses():
    return ResponseTable()


def test_recording_is_complete_and_ordered(recorder):
    arguments = [(1, "a"), (2, "b"), (3, "c"), (4, "d")]
    for args in arguments:
        recorder.record("f", args)

    assert [call.args for call in recorder.calls_for("f")] == arguments
    assert recorder.count("f") == len(arguments)
    sequences = [call.sequence for call in recorder.calls_for("f")]
    assert sequences == sorted(sequences)


def test_unknown_method_has_empty_history(recorder):
    assert recorder.calls_for("never") == []
    assert recorder.count("never") == 0
    assert not recorder.was_called("never")
    assert recorder.last_call("never") is None


def test_calls_for_returns_a_copy(recorder):
    recorder.record("f", ())
    recorder.calls_for("f").clear()

    assert recorder.count("f") == 1


def test_reset_clears_every_method(recorder):
    recorder.record("f", (1,))
    recorder.record("g", (2,), {"flag": True})

    recorder.reset()

    assert recorder.calls_for("f") == []
    assert recorder.calls_for("g") == []
    assert recorder.all_calls() == []


def test_all_calls_interleaves_methods_in_call_order(recorder):
    recorder.record("f", (1,))
    recorder.record("g", (2,))
    recorder.record("f", (3,))

    assert [(c.method_name, c.args) for c in recorder.all_calls()] == [
        ("f", (1,)),
        ("g", (2,)),
        ("f", (3,)),
    ]


def test_unset_response_uses_fallback(responses):
    assert responses.resolve("f", lambda: "fallback") == "fallback"


def test_fallback_may_raise(responses):
    def refuse():
        raise RuntimeError("no answer")

    with pytest.raises(RuntimeError, match="no answer"):
        responses.resolve("f", refuse)


def test_new_recipe_replaces_old(responses):
    responses.set_response("f", Returns(1))
    responses.set_response("f", Raises(ValueError("boom")))

    with pytest.raises(ValueError, match="boom"):
        responses.resolve("f", lambda: None)


def test_persistent_error_keeps_raising(responses):
    responses.set_response("f", Raises(ValueError("boom")))

    for _ in range(3):
        with pytest.raises(ValueError):
            responses.resolve("f", lambda: None)


def test_sequence_restarts_when_set_again(responses):
    responses.set_response("f", ReturnsSequence((1, 2)))
    assert responses.resolve("f", lambda: None) == 1

    responses.set_response("f", ReturnsSequence((1, 2)))
    assert responses.resolve("f", lambda: None) == 1


def test_empty_sequence_is_rejected():
    with pytest.raises(ValueError):
        ReturnsSequence(())


def test_clear_single_method(responses):
    responses.set_response("f", Returns(1))
    responses.set_response("g", Returns(2))

    responses.clear("f")

    assert not responses.has_response("f")
    assert responses.resolve("g", lambda: None) == 2


def test_unsupported_recipe_is_rejected(responses):
    with pytest.raises(TypeError):
        responses.set_response("f", 42)
