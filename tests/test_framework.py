"""
Tests for the simulation loop and the grid stepper.
"""

import numpy as np
import pytest

from cellular import (
    ArrayOutput,
    CustomNeighborhood,
    InvalidOverflowError,
    Life,
    Model,
    Output,
    PartialModel,
    RadialNeighborhood,
    RunState,
    ShapeMismatchError,
    SimParams,
    Simulation,
    broadcast_rules,
    sim,
)


class SetOne(Model):
    def rule(self, state, index, t, source, dest, *args):
        return 1


class Negate(Model):
    def rule(self, state, index, t, source, dest, *args):
        return 0 if state else 1


class ShiftRight(Model):
    """Each cell takes the value of its left neighbor (wrapping)."""

    def rule(self, state, index, t, source, dest, *args):
        row, col = index
        return source[row, (col - 1) % source.shape[1]]


class MoveDown(PartialModel):
    """Pushes every active cell one row down; returns junk that must be ignored."""

    def rule(self, state, index, t, source, dest, *args):
        if state:
            row, col = index
            dest[(row + 1) % dest.shape[0], col] = state
        return 99


class Fill(PartialModel):
    neutral = 7

    def rule(self, state, index, t, source, dest, *args):
        return None


class Recorder(Model):
    def __init__(self):
        self.calls = []

    def rule(self, state, index, t, source, dest, *args):
        self.calls.append((index, t, args))
        return state


class RecordingOutput(Output):
    def __init__(self):
        self.updates = []

    def update(self, frame, t, pause):
        self.updates.append((frame.copy(), t, pause))


def blinker():
    grid = np.zeros((5, 5), dtype=np.int8)
    grid[2, 1:4] = 1
    return grid


def test_isolated_cell_dies_in_one_step():
    init = np.zeros((3, 3), dtype=np.int8)
    init[1, 1] = 1
    model = Life(neighborhood=RadialNeighborhood("moore", 1, "wrap"))
    output = sim(ArrayOutput(init), model, init, time=range(1, 2))
    assert len(output.frames) == 2
    assert not output.frames[-1].any()


def test_blinker_oscillates():
    init = blinker()
    expected = np.zeros((5, 5), dtype=np.int8)
    expected[1:4, 2] = 1

    output = sim(ArrayOutput(init), Life(), init, time=range(1, 3))
    np.testing.assert_array_equal(output.frames[1], expected)
    np.testing.assert_array_equal(output.frames[2], init)


def test_init_is_not_modified():
    init = blinker()
    before = init.copy()
    sim(ArrayOutput(init), Life(), init, time=range(1, 4))
    np.testing.assert_array_equal(init, before)


def test_model_chain():
    rng = np.random.default_rng(0)
    init = rng.integers(0, 2, size=(4, 6)).astype(np.int8)
    output = sim(ArrayOutput(init), (SetOne(), Negate()), init, time=range(1, 2))
    assert not output.frames[-1].any()

    output = sim(ArrayOutput(init), [SetOne()], init, time=range(1, 2))
    assert output.frames[-1].all()


def test_no_read_after_write_within_sweep():
    init = np.arange(12).reshape(3, 4)
    output = sim(ArrayOutput(init), ShiftRight(), init, time=range(1, 3))
    np.testing.assert_array_equal(output.frames[1], np.roll(init, 1, axis=1))
    np.testing.assert_array_equal(output.frames[2], np.roll(init, 2, axis=1))


def test_partial_model_dest_is_reset():
    init = np.zeros((4, 3), dtype=np.int8)
    init[0, 0] = 1
    output = sim(ArrayOutput(init), MoveDown(), init, time=range(1, 3))
    first, second = output.frames[1], output.frames[2]
    assert first[1, 0] == 1 and first.sum() == 1
    assert second[2, 0] == 1 and second.sum() == 1


def test_partial_model_neutral_value():
    init = np.zeros((2, 2), dtype=np.int8)
    output = sim(ArrayOutput(init), Fill(), init, time=range(1, 2))
    assert (output.frames[-1] == 7).all()


def test_broadcast_rules_swaps_buffers():
    source = blinker()
    dest = np.zeros_like(source)
    new_source, new_dest = broadcast_rules(Life(), source, dest, 1)
    assert new_source is dest
    assert new_dest is source
    assert new_source[1:4, 2].all()
    assert source.flags.writeable

    # two models: the result ends up back in the original source buffer
    new_source, new_dest = broadcast_rules((SetOne(), Negate()), source, dest, 1)
    assert new_source is source
    assert not source.any()


def test_broadcast_rules_needs_separate_buffers():
    grid = np.zeros((3, 3))
    with pytest.raises(ValueError):
        broadcast_rules(Life(), grid, grid, 1)
    with pytest.raises(ValueError):
        broadcast_rules(Life(), grid, grid[:], 1)
    # interleaved views are rejected without an exact overlap search
    strided = np.zeros((6, 3))
    with pytest.raises(ValueError):
        broadcast_rules(Life(), strided[::2], strided[1::2], 1)
    with pytest.raises(ShapeMismatchError):
        broadcast_rules(Life(), grid, np.zeros((3, 4)), 1)


def test_extra_args_and_times_are_forwarded():
    init = np.zeros((2, 2), dtype=np.int8)
    model = Recorder()
    output = sim(ArrayOutput(init), model, init, "a", 5, time=[10, 20, 30])
    assert output.times == [None, 10, 20, 30]
    assert len(model.calls) == 3 * 4
    assert {args for _, _, args in model.calls} == {("a", 5)}
    # row-major sweep order
    assert [index for index, _, _ in model.calls[:4]] == [(0, 0), (0, 1), (1, 0), (1, 1)]
    assert [t for _, t, _ in model.calls[::4]] == [10, 20, 30]


def test_output_receives_frame_time_and_pause():
    init = blinker()
    output = RecordingOutput()
    sim(output, Life(), init, time=range(3, 5), pause=0.25)
    assert [(t, pause) for _, t, pause in output.updates] == [(3, 0.25), (4, 0.25)]
    np.testing.assert_array_equal(output.updates[1][0], init)


def test_default_time_range():
    params = SimParams()
    assert list(params.time) == list(range(1, 1001))
    assert params.pause == 0.0


def test_simulation_state_machine():
    init = blinker()
    run = Simulation(ArrayOutput(init), Life(), init, params=SimParams(time=range(1, 3)))
    assert run.state is RunState.PENDING
    assert run.t == 1
    np.testing.assert_array_equal(run.frame, init)

    assert run.step()
    assert run.state is RunState.PENDING
    assert run.t == 2
    assert run.frame[1:4, 2].all()

    assert not run.step()
    assert run.state is RunState.DONE
    assert run.t is None
    assert not run.step()
    assert run.steps_taken == 2
    assert len(run.output.frames) == 3


def test_empty_time_range():
    init = blinker()
    run = Simulation(ArrayOutput(init), Life(), init, params=SimParams(time=[]))
    assert run.state is RunState.DONE
    assert run.run().frames[0] is not init
    assert len(run.output.frames) == 1


def test_one_dimensional_simulation():
    init = np.array([0, 0, 1, 0, 0], dtype=np.int8)
    model = Life(neighborhood=RadialNeighborhood("onedim", 1), b={1}, s=set())
    output = sim(ArrayOutput(init), model, init, time=range(1, 2))
    np.testing.assert_array_equal(output.frames[-1], [0, 1, 0, 1, 0])


def test_empty_custom_neighborhood_runs_on_any_grid():
    """With no neighbors every count is zero, so b={0} flips each cell."""
    model = Life(neighborhood=CustomNeighborhood([]), b={0}, s=set())
    init = np.array([0, 1, 0, 1, 0], dtype=np.int8)
    output = sim(ArrayOutput(init), model, init, time=range(1, 2))
    np.testing.assert_array_equal(output.frames[-1], [1, 0, 1, 0, 1])

    output = sim(ArrayOutput(blinker()), model, blinker(), time=range(1, 2))
    np.testing.assert_array_equal(output.frames[-1], 1 - blinker())


def test_shape_mismatch_is_fatal_before_stepping():
    init = np.zeros(5, dtype=np.int8)
    output = ArrayOutput(init)
    with pytest.raises(ShapeMismatchError):
        sim(output, Life(), init, time=range(1, 3))
    assert len(output.frames) == 1

    onedim = Life(neighborhood=RadialNeighborhood("onedim", 1))
    with pytest.raises(ShapeMismatchError):
        sim(ArrayOutput(blinker()), (Life(), onedim), blinker())


def test_wrap_on_empty_grid_is_fatal():
    init = np.zeros((0, 5), dtype=np.int8)
    model = Life(neighborhood=RadialNeighborhood(overflow="wrap"))
    with pytest.raises(InvalidOverflowError):
        sim(ArrayOutput(init), model, init)


def test_invalid_chains():
    init = blinker()
    with pytest.raises(ValueError):
        sim(ArrayOutput(init), [], init)
    with pytest.raises(TypeError):
        sim(ArrayOutput(init), [Life(), "not a model"], init)
    with pytest.raises(ValueError):
        Simulation(ArrayOutput(init), Life(), init, params=SimParams(pause=-1))


def test_rule_errors_propagate():
    class Broken(Model):
        def rule(self, state, index, t, source, dest, *args):
            raise RuntimeError("boom")

    init = blinker()
    output = ArrayOutput(init)
    with pytest.raises(RuntimeError, match="boom"):
        sim(output, Broken(), init, time=range(1, 3))
    assert len(output.frames) == 1


def test_source_is_read_only_during_sweep():
    class WritesSource(Model):
        def rule(self, state, index, t, source, dest, *args):
            source[index] = 1
            return state

    init = blinker()
    with pytest.raises(ValueError):
        sim(ArrayOutput(init), WritesSource(), init, time=range(1, 2))
