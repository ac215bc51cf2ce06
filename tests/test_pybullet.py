"""
PyBullet Vehicle Tests

Closed-loop checks against the real physics engine in DIRECT (headless)
mode. Skipped when pybullet is not installed.
"""

import math
import os

import numpy as np
import pytest

pytest.importorskip("pybullet")

from quadhover.exceptions import GravityConfigurationError
from quadhover.hal.hal import create_vehicle
from quadhover.hal.hal_pybullet import PyBulletVehicle, bullet_damping
from quadhover.input import ControlKey, ScriptedInput
from quadhover.main import FlightSimulation, main


@pytest.fixture
def vehicle():
    body = create_vehicle('pybullet', gui=False)
    yield body
    body.disconnect()


def test_bullet_damping_conversion():
    """(1 - d)^dt reproduces exp(-rate * dt)"""
    d = bullet_damping(10.0)
    assert 0.0 < d < 1.0
    assert (1.0 - d) ** 0.1 == pytest.approx(math.exp(-1.0))
    assert bullet_damping(0.0) == 0.0


def test_unknown_backend():
    with pytest.raises(ValueError):
        create_vehicle('mujoco')


def test_spawn_pose_in_y_up_frame(vehicle):
    """Vehicle spawns 2m up, level and at rest"""
    kin = vehicle.read_kinematics()

    np.testing.assert_allclose(kin.position, [0.0, 2.0, 0.0], atol=1e-9)
    np.testing.assert_allclose(np.abs(kin.orientation), [1.0, 0.0, 0.0, 0.0], atol=1e-9)
    np.testing.assert_allclose(kin.linear_velocity, np.zeros(3), atol=1e-9)


def test_hover(vehicle):
    """Two seconds without input keeps the vehicle at 2m"""
    sim = FlightSimulation(vehicle, ScriptedInput([(2.0, [])]))
    for _ in range(120):
        sim.step()

    kin = vehicle.read_kinematics()
    assert kin.height == pytest.approx(2.0, abs=0.05)
    assert vehicle.step_count == 120


def test_ascend(vehicle):
    """One second of ascend raises the target to 6m and the vehicle follows"""
    sim = FlightSimulation(vehicle, ScriptedInput([(1.0, [ControlKey.ASCEND])]))
    for _ in range(300):
        sim.step()

    assert sim.state.target_altitude == pytest.approx(6.0, abs=1e-6)
    assert vehicle.read_kinematics().height > 4.0


def test_speed_stays_limited(vehicle):
    sim = FlightSimulation(vehicle, ScriptedInput([(2.0, [ControlKey.ASCEND])]))
    for _ in range(120):
        sim.step()
        assert np.linalg.norm(vehicle.read_kinematics().linear_velocity) <= 3.0 + 20.0 / 60.0


def test_double_gravity_refused():
    """Engine gravity together with the controller's gravity term is rejected"""
    body = PyBulletVehicle(gui=False, engine_gravity=9.81)
    try:
        with pytest.raises(GravityConfigurationError):
            FlightSimulation(body, ScriptedInput([(1.0, [])]))
    finally:
        body.disconnect()


def test_reset(vehicle):
    sim = FlightSimulation(vehicle, ScriptedInput([(1.0, [ControlKey.DESCEND])]))
    for _ in range(30):
        sim.step()
    vehicle.reset()

    assert vehicle.read_kinematics().height == pytest.approx(2.0)


def test_main_headless(tmp_path, capsys):
    """CLI runs the scripted flight headless and writes a log"""
    main(['--duration', '1', '--log', '--log-dir', str(tmp_path)])

    out = capsys.readouterr().out
    assert "Simulation complete" in out
    logs = [f for f in os.listdir(tmp_path) if f.endswith('.csv')]
    assert len(logs) == 1
