from __future__ import annotations

from dataclasses import dataclass, replace

from kudet.core.result import Err, Ok, Result
from kudet.services.release.errors import ReleaseError
from kudet.services.release.fsm import FINISH, StepOutcome, advance, run_state_machine


@dataclass(frozen=True, slots=True)
class _State:
    step: str
    counter: int


def test_run_state_machine_advances_and_checkpoints() -> None:
    seen: list[_State] = []

    def step_a(s: _State) -> Result[StepOutcome[_State], ReleaseError]:
        return Ok(advance(replace(s, step="b", counter=s.counter + 1)))

    def step_b(s: _State) -> Result[StepOutcome[_State], ReleaseError]:
        return Ok(FINISH)

    result = run_state_machine(
        initial_state=_State(step="a", counter=0),
        get_step=lambda s: s.step,
        handlers={"a": step_a, "b": step_b},
        on_checkpoint=seen.append,
    )

    assert result == Ok(_State(step="b", counter=1))
    assert seen == [_State(step="b", counter=1)]


def test_run_state_machine_unknown_step_fails() -> None:
    result = run_state_machine(
        initial_state=_State(step="missing", counter=0),
        get_step=lambda s: s.step,
        handlers={},
    )

    assert isinstance(result, Err)
    assert result.error.kind == "invalid_input"
    assert "missing" in result.error.message


def test_run_state_machine_propagates_handler_error() -> None:
    calls: list[str] = []

    def bad_step(_: _State) -> Result[StepOutcome[_State], ReleaseError]:
        calls.append("a")
        return Err(ReleaseError(kind="push_failed", message="boom"))

    def never(_: _State) -> Result[StepOutcome[_State], ReleaseError]:
        calls.append("b")
        return Ok(FINISH)

    result = run_state_machine(
        initial_state=_State(step="a", counter=0),
        get_step=lambda s: s.step,
        handlers={"a": bad_step, "b": never},
    )

    assert result == Err(ReleaseError(kind="push_failed", message="boom"))
    assert calls == ["a"]


def test_finish_on_first_step_returns_initial_state() -> None:
    result = run_state_machine(
        initial_state=_State(step="done", counter=7),
        get_step=lambda s: s.step,
        handlers={"done": lambda _: Ok(FINISH)},
    )

    assert result == Ok(_State(step="done", counter=7))
