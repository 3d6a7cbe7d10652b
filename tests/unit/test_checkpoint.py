"""Unit tests for the double-buffered restart checkpoints."""

import logging

import numpy as np
import pytest

from tests import serial_comm
from topopt.core.mesh import MeshBuilder
from topopt.exceptions import CheckpointFormatError, RestartDisabledError
from topopt.optimizer.factory import default_coefficients
from topopt.optimizer.handle import MMAState
from topopt.restart.checkpoint import (
    CONTAINER_FIELDS, ResumeMode, RestartCheckpointManager, Slot,
    format_sidecar, parse_sidecar, read_sidecar, write_sidecar
)
from topopt.state.design import DesignStateStore


def _fill(state, offset):
    """Give every persisted field distinguishable contents."""
    for i, vec in enumerate([state.x, state.x_phys] + state.x_passive
                            + [state.node_density, state.node_adding_counts]):
        vec.local[:] = offset + 100 * i + np.arange(vec.get_local_size())


def _optimizer(state, offset):
    a, c, d = default_coefficients(state.m)
    optimizer = MMAState.from_design(state.n, state.m, state.x, a, c, d)
    for i, vec in enumerate(optimizer.restart_vectors()):
        vec.local[:] = offset - 10 * (i + 1)
    return optimizer


@pytest.fixture
def state():
    mesh = MeshBuilder(serial_comm(), (9, 5), (0, 2, 0, 1), levels=2,
                       dofs_per_node=2).build()
    return DesignStateStore(mesh, num_constraints=1, volfrac=0.3).allocate()


class TestSidecar:
    """Test the iteration file format."""

    def test_format(self):
        assert format_sidecar(17, 0.5) == "17 0.5\n"

    def test_scale_round_trip_is_exact(self):
        scale = 1.0 / 3.0
        iteration, parsed = parse_sidecar(format_sidecar(5, scale))
        assert iteration == 5
        assert parsed == scale

    def test_parse_tolerates_whitespace(self):
        assert parse_sidecar("  3   2.25  \n") == (3, 2.25)

    def test_malformed(self):
        with pytest.raises(CheckpointFormatError):
            parse_sidecar("12\n")
        with pytest.raises(CheckpointFormatError, match="Malformed"):
            parse_sidecar("twelve 1.0\n")

    def test_file_round_trip(self, tmp_path):
        path = tmp_path / "run" / "itr.dat"
        write_sidecar(path, 42, 123.456)
        assert path.read_text() == "42 123.456\n"
        assert read_sidecar(path) == (42, 123.456)


class TestSlotAlternation:
    """Test where checkpoints are written."""

    def test_slot_paths(self, tmp_path):
        manager = RestartCheckpointManager(serial_comm(), workdir=tmp_path)
        assert manager.slot_paths(Slot.A) == (tmp_path / "Restart00.dat",
                                              tmp_path / "Restart00_itr_f0.dat")
        assert manager.slot_paths(Slot.B) == (tmp_path / "Restart01.dat",
                                              tmp_path / "Restart01_itr_f0.dat")

    def test_first_write_goes_to_slot_a_then_alternates(self, tmp_path, state):
        manager = RestartCheckpointManager(serial_comm(), workdir=tmp_path)
        optimizer = _optimizer(state, 0.0)

        slots = [manager.write(i, 1.0, state, optimizer) for i in range(4)]

        assert slots == [Slot.A, Slot.B, Slot.A, Slot.B]
        assert manager.last_slot is Slot.B
        assert read_sidecar(tmp_path / "Restart00_itr_f0.dat") == (2, 1.0)
        assert read_sidecar(tmp_path / "Restart01_itr_f0.dat") == (3, 1.0)

    def test_previous_slot_survives_next_write(self, tmp_path, state):
        """After writes N-1 and N both restart points are readable."""
        manager = RestartCheckpointManager(serial_comm(), workdir=tmp_path)

        _fill(state, 0.0)
        manager.write(9, 2.0, state, _optimizer(state, 0.0))
        _fill(state, 5000.0)
        manager.write(10, 3.0, state, _optimizer(state, 5000.0))

        older = manager.read_slot(Slot.A, state)
        newer = manager.read_slot(Slot.B, state)
        assert (older.iteration, older.scale) == (9, 2.0)
        assert (newer.iteration, newer.scale) == (10, 3.0)
        assert older.as_dict()["x"].local[0] == 0.0
        assert newer.as_dict()["x"].local[0] == 5000.0

    def test_failed_write_keeps_last_good_slot(self, tmp_path, state):
        """A write that fails midway is retried in the same slot."""
        manager = RestartCheckpointManager(serial_comm(), workdir=tmp_path)
        _fill(state, 0.0)
        assert manager.write(1, 1.0, state, _optimizer(state, 0.0)) is Slot.A

        blocker = tmp_path / "Restart01.dat"
        blocker.mkdir()
        _fill(state, 7000.0)
        with pytest.raises(OSError):
            manager.write(2, 2.0, state, _optimizer(state, 7000.0))
        assert manager.last_slot is Slot.A
        blocker.rmdir()

        assert manager.write(3, 3.0, state, _optimizer(state, 7000.0)) is Slot.B
        good = manager.read_slot(Slot.A, state)
        assert good.iteration == 1
        assert good.as_dict()["x"].local[0] == 0.0
        assert manager.read_slot(Slot.B, state).iteration == 3


class TestWriteAndRead:
    """Test checkpoint contents."""

    def test_every_vector_round_trips(self, tmp_path, state):
        manager = RestartCheckpointManager(serial_comm(), workdir=tmp_path)
        _fill(state, 1.0)
        optimizer = _optimizer(state, 0.0)
        manager.write(7, 0.125, state, optimizer)

        record = manager.read_slot(Slot.A, state)
        fields = record.as_dict()

        assert list(fields) == list(CONTAINER_FIELDS)
        assert record.iteration == 7
        assert record.scale == 0.125
        expected = ([state.x, state.x_phys] + list(optimizer.restart_vectors())
                    + state.x_passive + [state.node_density, state.node_adding_counts])
        for name, vec in zip(CONTAINER_FIELDS, expected):
            np.testing.assert_array_equal(fields[name].local, vec.local, err_msg=name)

    def test_container_size(self, tmp_path, state):
        manager = RestartCheckpointManager(serial_comm(), workdir=tmp_path)
        manager.write(1, 1.0, state, _optimizer(state, 0.0))

        n_elem = state.x.get_size()
        n_node = state.node_density.get_size()
        expected = 12 * 8 + (10 * n_elem + 2 * n_node) * 8
        assert (tmp_path / "Restart00.dat").stat().st_size == expected

    def test_write_does_not_modify_state(self, tmp_path, state):
        manager = RestartCheckpointManager(serial_comm(), workdir=tmp_path)
        _fill(state, 3.0)
        before = state.x.local.copy()
        manager.write(1, 1.0, state, _optimizer(state, 0.0))
        np.testing.assert_array_equal(state.x.local, before)

    def test_disabled_write_touches_nothing(self, tmp_path, state):
        """A refused write leaves existing slots byte-identical."""
        enabled = RestartCheckpointManager(serial_comm(), workdir=tmp_path)
        enabled.write(1, 1.0, state, _optimizer(state, 0.0))
        enabled.write(2, 1.0, state, _optimizer(state, 0.0))
        before = {p.name: p.read_bytes() for p in tmp_path.iterdir()}

        disabled = RestartCheckpointManager(serial_comm(), enabled=False, workdir=tmp_path)
        with pytest.raises(RestartDisabledError):
            disabled.write(3, 1.0, state, _optimizer(state, 9.0))

        after = {p.name: p.read_bytes() for p in tmp_path.iterdir()}
        assert after == before
        assert disabled.last_slot is None


class TestResumeDecision:
    """Test the cold start / resume choice."""

    def test_no_files_configured(self, tmp_path):
        decision = RestartCheckpointManager(serial_comm(), workdir=tmp_path).decide_resume()
        assert decision.mode is ResumeMode.COLD
        assert not decision.resume

    def test_missing_file_warns_and_starts_cold(self, tmp_path, caplog):
        vec = tmp_path / "Restart00.dat"
        vec.write_bytes(b"")
        manager = RestartCheckpointManager(
            serial_comm(), workdir=tmp_path,
            restart_file_vec=str(vec), restart_file_itr=str(tmp_path / "nope.dat"),
        )
        with caplog.at_level(logging.WARNING):
            decision = manager.decide_resume()
        assert decision.mode is ResumeMode.COLD
        assert f"File: {tmp_path / 'nope.dat'} NOT FOUND" in caplog.text

    def test_both_files_present(self, tmp_path, state):
        writer = RestartCheckpointManager(serial_comm(), workdir=tmp_path)
        writer.write(4, 1.0, state, _optimizer(state, 0.0))
        vec, itr = writer.slot_paths(Slot.A)

        continuing = RestartCheckpointManager(serial_comm(), workdir=tmp_path,
                                              restart_file_vec=str(vec),
                                              restart_file_itr=str(itr))
        decision = continuing.decide_resume()
        assert decision.mode is ResumeMode.CONTINUE
        assert decision.vector_path == str(vec)

        design_only = RestartCheckpointManager(serial_comm(), workdir=tmp_path,
                                               restart_file_vec=str(vec),
                                               restart_file_itr=str(itr),
                                               only_load_design=True)
        assert design_only.decide_resume().mode is ResumeMode.DESIGN_ONLY

    def test_restart_disabled_ignores_files(self, tmp_path, state):
        writer = RestartCheckpointManager(serial_comm(), workdir=tmp_path)
        writer.write(4, 1.0, state, _optimizer(state, 0.0))
        vec, itr = writer.slot_paths(Slot.A)

        manager = RestartCheckpointManager(serial_comm(), enabled=False,
                                           restart_file_vec=str(vec),
                                           restart_file_itr=str(itr))
        assert manager.decide_resume().mode is ResumeMode.COLD

    def test_load_resume(self, tmp_path, state):
        writer = RestartCheckpointManager(serial_comm(), workdir=tmp_path)
        _fill(state, 11.0)
        optimizer = _optimizer(state, 0.0)
        writer.write(12, 0.75, state, optimizer)
        saved_x = state.x.local.copy()
        saved_upper = optimizer.upper.local.copy()
        vec, itr = writer.slot_paths(Slot.A)

        state.x.set(0.0)
        state.x_phys.set(0.0)
        reader = RestartCheckpointManager(serial_comm(), restart_file_vec=str(vec),
                                          restart_file_itr=str(itr))
        iteration, scale = reader.load_resume(reader.decide_resume(), state)

        assert (iteration, scale) == (12, 0.75)
        np.testing.assert_array_equal(state.x.local, saved_x)
        np.testing.assert_array_equal(reader.upper.local, saved_upper)

    def test_load_resume_requires_resume_decision(self, tmp_path, state):
        manager = RestartCheckpointManager(serial_comm(), workdir=tmp_path)
        with pytest.raises(ValueError):
            manager.load_resume(manager.decide_resume(), state)
