"""
Flight data logger tests
"""

import csv

import pytest

from quadhover.control.flight_controller import ControlState, FlightController, KinematicSnapshot
from quadhover.data_logger import HEADER, FlightDataLogger, LoggerStats
from quadhover.input import ControlKey, FrameInputs


def log_frames(data_logger, frames=10):
    controller = FlightController()
    state = ControlState()
    kinematics = KinematicSnapshot(position=[0.0, 1.5, 0.0], linear_velocity=[0.0, 0.5, 0.0])
    inputs = FrameInputs(dt=0.1, active=[ControlKey.ASCEND, ControlKey.PITCH_FORWARD])
    for _ in range(frames):
        output = controller.update(state, inputs, kinematics)
        data_logger.log_frame(inputs, kinematics, state, output)


def test_log_file_contents(tmp_path):
    """One row per frame, header first, keys recorded by name"""
    data_logger = FlightDataLogger(str(tmp_path / "logs"), auto_timestamp=False)
    log_file = data_logger.start_logging("unit")
    log_frames(data_logger, frames=10)
    data_logger.stop_logging()

    assert log_file.endswith("unit.csv")
    with open(log_file, newline='') as f:
        rows = list(csv.reader(f))

    assert rows[0] == HEADER
    assert len(rows) == 11
    first = dict(zip(HEADER, rows[1]))
    assert first['keys'] == 'ascend|pitch_forward'
    assert float(first['pos_y']) == pytest.approx(1.5)
    assert float(first['target_altitude']) == pytest.approx(2.4)
    assert data_logger.get_log_files() == [log_file]


def test_log_frame_without_start_is_ignored(tmp_path):
    data_logger = FlightDataLogger(str(tmp_path), auto_timestamp=False)
    log_frames(data_logger, frames=3)
    assert data_logger.log_count == 0
    assert data_logger.get_log_files() == []


def test_analyze_log(tmp_path):
    """Stats cover duration, altitude, throttle and speed"""
    data_logger = FlightDataLogger(str(tmp_path), auto_timestamp=False)
    log_file = data_logger.start_logging("stats")
    log_frames(data_logger, frames=10)
    data_logger.stop_logging()

    stats = LoggerStats.analyze_log(log_file)

    assert stats['record_count'] == 10
    assert stats['duration_seconds'] == pytest.approx(1.0)
    assert stats['altitude_stats']['min'] == pytest.approx(1.5)
    assert stats['altitude_stats']['max'] == pytest.approx(1.5)
    assert stats['throttle_stats']['max'] <= 20.0
    assert stats['max_speed'] == pytest.approx(0.5)


def test_analyze_missing_log(tmp_path):
    stats = LoggerStats.analyze_log(str(tmp_path / "nope.csv"))
    assert 'error' in stats
