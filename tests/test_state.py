import threading
import time

import pytest

from triaxial3d.solver import RunControl, SimulationState, StateTransitionError


def running_control():
    control = RunControl()
    control.begin()
    assert control.mark_running()
    return control


class TestTransitions:

    def test_happy_path(self):
        control = RunControl()
        assert control.state is SimulationState.IDLE
        control.begin()
        assert control.state is SimulationState.INITIALIZING
        assert control.mark_running()
        assert control.pause()
        assert control.state is SimulationState.PAUSED
        assert control.resume()
        assert control.complete()
        assert control.state is SimulationState.COMPLETED
        assert control.state.is_terminal

    def test_invalid_host_calls_return_false(self):
        control = RunControl()
        assert not control.pause()
        assert not control.resume()
        assert not control.cancel()
        assert not control.continue_after_failure()
        assert control.state is SimulationState.IDLE

    def test_resume_does_not_leave_failure_pause(self):
        control = running_control()
        assert control.pause_on_failure()
        assert not control.resume()
        assert control.state is SimulationState.PAUSED_ON_FAILURE
        assert control.continue_after_failure()
        assert control.ignore_failure
        assert control.state is SimulationState.RUNNING

    def test_cancel_from_failure_pause(self):
        control = running_control()
        control.pause_on_failure()
        assert control.cancel()
        assert control.state is SimulationState.CANCELLED
        assert not control.complete()

    def test_begin_twice_raises(self):
        control = RunControl()
        control.begin()
        with pytest.raises(StateTransitionError):
            control.begin()

    def test_restart_after_terminal_state(self):
        control = running_control()
        control.pause_on_failure()
        control.continue_after_failure()
        control.cancel()
        control.begin()
        assert control.state is SimulationState.INITIALIZING
        assert not control.ignore_failure

    def test_cancel_during_initialization(self):
        control = RunControl()
        control.begin()
        assert control.cancel()
        assert not control.mark_running()

    def test_fail_keeps_terminal_state(self):
        control = running_control()
        control.cancel()
        control.fail()
        assert control.state is SimulationState.CANCELLED
        control = running_control()
        control.fail()
        assert control.state is SimulationState.FAILED


class TestCheckpoint:

    def test_running_passes(self):
        assert running_control().checkpoint()

    def test_blocks_while_paused(self):
        control = running_control()
        control.pause()
        released = threading.Event()

        def worker():
            if control.checkpoint(poll=0.01):
                released.set()

        thread = threading.Thread(target=worker)
        thread.start()
        time.sleep(0.1)
        assert not released.is_set()
        control.resume()
        thread.join(timeout=5)
        assert released.is_set()

    def test_cancel_releases_paused_loop(self):
        control = running_control()
        control.pause()
        result = []
        thread = threading.Thread(target=lambda: result.append(control.checkpoint(poll=0.01)))
        thread.start()
        control.cancel()
        thread.join(timeout=5)
        assert result == [False]

    def test_external_cancel_signal(self):
        control = running_control()
        signal = threading.Event()
        signal.set()
        assert not control.checkpoint(signal)
        assert control.state is SimulationState.CANCELLED
