"""
Flight Simulation Test

Flies the full frame loop (input → guard → controller → body) against a
minimal rigid-body double, so closed-loop behaviour is checked without a
physics engine:

1. Gravity contract on construction
2. Hover at the spawn altitude
3. Climb to a new target and settle
4. Pitch forward moves the vehicle toward -Z
5. Data logging and scripted demo flight
"""

import numpy as np
import pytest

from quadhover.control.flight_controller import ControlState, FlightController, KinematicSnapshot
from quadhover.control.quaternion_math import (
    IDENTITY, quaternion_from_axis_angle, quaternion_multiply, quaternion_normalize
)
from quadhover.data_logger import FlightDataLogger, LoggerStats
from quadhover.exceptions import GravityConfigurationError, NonFiniteStateError
from quadhover.flight_config import STRICT_CONFIG
from quadhover.hal.hal import VehicleBody
from quadhover.input import ControlKey, ScriptedInput
from quadhover.main import FlightSimulation, demo_flight_plan


class FakeBody(VehicleBody):
    """Unit-mass point body with semi-implicit Euler integration (Y-up)"""

    def __init__(self, time_step=1.0 / 60.0, engine_gravity=0.0, position=(0.0, 2.0, 0.0)):
        self._time_step = time_step
        self._engine_gravity = engine_gravity
        self.position = np.array(position, dtype=float)
        self.orientation = IDENTITY.copy()
        self.linear_velocity = np.zeros(3)
        self.angular_velocity = np.zeros(3)
        self.force = np.zeros(3)
        self.steps = 0

    @property
    def engine_gravity(self):
        return self._engine_gravity

    @property
    def time_step(self):
        return self._time_step

    def read_kinematics(self):
        return KinematicSnapshot(
            position=self.position.copy(),
            orientation=self.orientation.copy(),
            linear_velocity=self.linear_velocity.copy(),
            angular_velocity=self.angular_velocity.copy(),
        )

    def apply_force(self, force):
        self.force = self.force + force

    def set_angular_velocity(self, angular_velocity):
        self.angular_velocity = np.array(angular_velocity, dtype=float)

    def set_linear_velocity(self, linear_velocity):
        self.linear_velocity = np.array(linear_velocity, dtype=float)

    def step(self):
        dt = self._time_step
        accel = self.force + np.array([0.0, -self._engine_gravity, 0.0])
        self.linear_velocity = self.linear_velocity + accel * dt
        self.position = self.position + self.linear_velocity * dt

        rate = np.linalg.norm(self.angular_velocity)
        if rate > 0.0:
            spin = quaternion_from_axis_angle(self.angular_velocity, rate * dt)
            self.orientation = quaternion_normalize(quaternion_multiply(spin, self.orientation))

        self.force = np.zeros(3)
        self.steps += 1


def fly(segments, dt=1.0 / 60.0, body=None, controller=None):
    body = body or FakeBody(time_step=dt)
    script = ScriptedInput(segments, dt=dt)
    sim = FlightSimulation(body, script, controller)
    while not script.finished:
        sim.step()
    return sim, body


def test_gravity_contract_checked_on_construction():
    """Engine gravity plus controller gravity is refused up front"""
    with pytest.raises(GravityConfigurationError):
        FlightSimulation(FakeBody(engine_gravity=9.81), ScriptedInput([(1.0, [])]))


def test_engine_gravity_mode():
    """Controller without its gravity term hovers on an engine with gravity"""
    controller = FlightController(FlightController().config.replace(controller_gravity=False))
    sim, body = fly([(2.0, [])], body=FakeBody(engine_gravity=9.81), controller=controller)

    assert body.position[1] == pytest.approx(2.0, abs=1e-6)


def test_hover_holds_spawn_altitude():
    """No input at the default target: the vehicle stays put"""
    sim, body = fly([(3.0, [])])

    assert body.steps == sim.frame == 180
    assert body.position[1] == pytest.approx(2.0, abs=1e-6)
    assert np.linalg.norm(body.linear_velocity) < 1e-6
    assert sim.state.target_altitude == 2.0


def test_climb_and_settle():
    """Ascend for 1s raises the target by 4m; the body settles there"""
    sim, body = fly([(1.0, [ControlKey.ASCEND])])
    assert sim.state.target_altitude == pytest.approx(6.0, abs=1e-6)

    peak_climb = 0.0
    for _ in range(360):
        sim.step()
        peak_climb = max(peak_climb, body.linear_velocity[1])

    # Speed is clamped to 3 m/s before each step, one step of thrust on top
    assert peak_climb <= 3.0 + 20.0 / 60.0
    assert body.position[1] == pytest.approx(6.0, abs=0.1)
    assert abs(body.linear_velocity[1]) < 0.1


def test_descend_stops_at_floor():
    """Holding descend never drives the target below the floor"""
    sim, body = fly([(2.0, [ControlKey.DESCEND])])

    assert sim.state.target_altitude == 1.0
    assert body.position[1] < 2.0


def test_pitch_forward_moves_toward_negative_z():
    sim, body = fly([(0.3, [ControlKey.PITCH_FORWARD]), (0.3, [])])

    assert sim.state.pitch_input < 0.26
    assert body.linear_velocity[2] < 0.0
    assert body.position[2] < 0.0


def test_roll_right_moves_toward_positive_x():
    sim, body = fly([(0.3, [ControlKey.ROLL_RIGHT]), (0.3, [])])

    assert body.linear_velocity[0] > 0.0


def test_vehicles_share_controller_not_state():
    """One controller drives two bodies with independent control state"""
    controller = FlightController()
    climber = FlightSimulation(FakeBody(), ScriptedInput([(1.0, [ControlKey.ASCEND])]), controller)
    hoverer = FlightSimulation(FakeBody(), ScriptedInput([(1.0, [])]), controller)

    for _ in range(60):
        climber.step()
        hoverer.step()

    assert climber.state.target_altitude == pytest.approx(6.0, abs=1e-6)
    assert hoverer.state.target_altitude == 2.0
    assert climber.body.position[1] > hoverer.body.position[1]


def test_strict_profile_rejects_non_finite_kinematics():
    body = FakeBody()
    body.position = np.array([np.nan, 2.0, 0.0])
    sim = FlightSimulation(body, ScriptedInput([(1.0, [])]), FlightController(STRICT_CONFIG))

    with pytest.raises(NonFiniteStateError):
        sim.step()


def test_default_profile_survives_non_finite_kinematics():
    body = FakeBody()
    body.linear_velocity = np.array([0.0, np.inf, 0.0])
    sim = FlightSimulation(body, ScriptedInput([(1.0, [])]))

    output = sim.step()

    assert np.all(np.isfinite(output.force))
    assert sim.guard.sanitized_frames == 1


def test_run_with_data_logger(tmp_path):
    """Every frame of a run is written to the flight log"""
    data_logger = FlightDataLogger(str(tmp_path), auto_timestamp=False)
    log_file = data_logger.start_logging("sim")

    dt = 0.125
    sim = FlightSimulation(FakeBody(time_step=dt), ScriptedInput([(1.0, [ControlKey.ASCEND])], dt=dt),
                           data_logger=data_logger)
    sim.run(duration=1.0, status_interval=0)
    data_logger.stop_logging()

    stats = LoggerStats.analyze_log(log_file)
    assert sim.frame == 8
    assert stats['record_count'] == 8
    assert stats['duration_seconds'] == pytest.approx(1.0)


def test_demo_flight_plan():
    """Demo script is 13s long and lands back in hover"""
    plan = demo_flight_plan()
    assert plan.duration == pytest.approx(13.0)
    assert plan.keys_at(0.0) == frozenset()
    assert plan.keys_at(2.5) == {ControlKey.ASCEND}
    assert plan.keys_at(12.5) == frozenset()


def test_demo_flight_stays_finite():
    plan = demo_flight_plan()
    sim = FlightSimulation(FakeBody(), plan)
    while not plan.finished:
        sim.step()

    assert np.all(np.isfinite(sim.body.position))
    assert sim.body.position[1] > 0.0
    assert sim.guard.sanitized_frames == 0


def test_control_state_copy_is_independent():
    state = ControlState()
    snapshot = state.copy()
    state.target_altitude = 5.0
    assert snapshot.target_altitude == 2.0
