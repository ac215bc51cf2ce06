"""
Hover Flight Controller

Turns pilot intents plus ground-truth kinematics into a world-space force and
an angular-velocity override, once per simulation frame:

    Pilot keys → altitude target → PD throttle ──┐
              → filtered pitch/roll/yaw → rate ──┼→ force, angular velocity
    Kinematics ──────────────────────────────────┘   (+ speed-limited velocity)

Gravity coupling: with controller_gravity enabled the output force already
contains the (0, -g, 0) term, so the physics engine must apply zero gravity
to the vehicle. Handle gravity in exactly one place (see safety.py).
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

import numpy as np

from quadhover.flight_config import FlightConfig, DEFAULT_CONFIG
from quadhover.input import ControlKey, FrameInputs
from .quaternion_math import IDENTITY, body_up

logger = logging.getLogger(__name__)


@dataclass
class ControlState:
    """Persistent per-vehicle control state (never reset mid-flight)"""
    target_altitude: float = 2.0
    pitch_input: float = 0.0   # rad, tilt command
    roll_input: float = 0.0    # rad, tilt command
    yaw_input: float = 0.0     # yaw-rate command

    def copy(self) -> 'ControlState':
        return replace(self)


@dataclass
class KinematicSnapshot:
    """Ground-truth vehicle state in the Y-up world frame"""
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    orientation: np.ndarray = field(default_factory=lambda: IDENTITY.copy())  # [w, x, y, z]
    linear_velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    angular_velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        self.position = np.asarray(self.position, dtype=float)
        self.orientation = np.asarray(self.orientation, dtype=float)
        self.linear_velocity = np.asarray(self.linear_velocity, dtype=float)
        self.angular_velocity = np.asarray(self.angular_velocity, dtype=float)

    @property
    def height(self) -> float:
        return float(self.position[1])


@dataclass
class ControlOutput:
    """Per-frame commands for the physics engine"""
    force: np.ndarray             # world-space force to accumulate
    angular_velocity: np.ndarray  # overwrites the body's angular velocity
    linear_velocity: np.ndarray   # overwrites the body's linear velocity
    throttle: float = 0.0
    altitude_error: float = 0.0


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class FlightController:
    """
    Altitude-hold + auto-levelling attitude controller.

    Holds configuration only; every vehicle owns its ControlState and passes
    it into update(), so one controller can drive any number of vehicles.
    """

    def __init__(self, config: Optional[FlightConfig] = None):
        self.config = config or DEFAULT_CONFIG

    @property
    def gravity_vector(self) -> np.ndarray:
        """Force term the controller adds to cancel gravity (zero if disabled)."""
        if self.config.controller_gravity:
            return np.array([0.0, -self.config.gravity, 0.0])
        return np.zeros(3)

    def update(self, state: ControlState, inputs: FrameInputs,
               kinematics: KinematicSnapshot) -> ControlOutput:
        """
        Run one control frame.

        Args:
            state: Persistent control state for this vehicle (mutated in place)
            inputs: Active controls and frame time
            kinematics: Current position, orientation and velocities

        Returns:
            ControlOutput for the physics engine to apply this frame
        """
        cfg = self.config
        dt = inputs.dt

        # Altitude target
        if inputs.is_active(ControlKey.ASCEND):
            state.target_altitude += cfg.altitude_rate * dt
        if inputs.is_active(ControlKey.DESCEND):
            state.target_altitude -= cfg.altitude_rate * dt
        state.target_altitude = clamp(state.target_altitude, cfg.min_altitude, cfg.max_altitude)

        # PD altitude hold around the hover thrust
        altitude_error = state.target_altitude - kinematics.height
        altitude_rate = float(kinematics.linear_velocity[1])
        adjustment = altitude_error * cfg.altitude_kp - altitude_rate * cfg.altitude_kd
        throttle = clamp(cfg.hover_thrust + adjustment, cfg.min_thrust, cfg.max_thrust)

        # Attitude command filtering
        state.pitch_input = self._filter_tilt(
            state.pitch_input, dt,
            inputs.is_active(ControlKey.PITCH_FORWARD),
            inputs.is_active(ControlKey.PITCH_BACK),
        )
        # Roll left wins over roll right and drives the command negative
        state.roll_input = self._filter_tilt(
            state.roll_input, dt,
            inputs.is_active(ControlKey.ROLL_RIGHT) and not inputs.is_active(ControlKey.ROLL_LEFT),
            inputs.is_active(ControlKey.ROLL_LEFT),
        )
        state.yaw_input = self._filter_yaw(
            state.yaw_input, dt,
            inputs.is_active(ControlKey.YAW_LEFT),
            inputs.is_active(ControlKey.YAW_RIGHT),
        )

        # Tilt clamp
        state.pitch_input = clamp(state.pitch_input, -cfg.max_tilt, cfg.max_tilt)
        state.roll_input = clamp(state.roll_input, -cfg.max_tilt, cfg.max_tilt)

        # Thrust along the body up axis
        up_direction = body_up(kinematics.orientation)
        force = up_direction * throttle + self.gravity_vector

        # Angular velocity: nose-down convention flips pitch/roll
        target_angvel = np.array([
            -state.pitch_input * cfg.tilt_rate_gain,
            state.yaw_input * cfg.yaw_rate_gain,
            -state.roll_input * cfg.tilt_rate_gain,
        ])
        blend = self._angular_blend(dt)
        current_angvel = kinematics.angular_velocity
        angular_velocity = current_angvel + (target_angvel - current_angvel) * blend

        linear_velocity = self.limit_speed(kinematics.linear_velocity)

        logger.debug(
            f"alt_err={altitude_error:+.3f} throttle={throttle:.2f} "
            f"pitch={state.pitch_input:+.3f} roll={state.roll_input:+.3f} yaw={state.yaw_input:+.3f}"
        )

        return ControlOutput(
            force=force,
            angular_velocity=angular_velocity,
            linear_velocity=linear_velocity,
            throttle=throttle,
            altitude_error=altitude_error,
        )

    # -- Helpers -------------------------------------------------------------

    def _filter_tilt(self, value: float, dt: float, positive: bool, negative: bool) -> float:
        """Accumulate while a key is held, otherwise decay toward level."""
        cfg = self.config
        if positive:
            return value + cfg.control_strength * dt
        if negative:
            return value - cfg.control_strength * dt
        # Floor at zero: a long frame must not flip the command's sign
        return value * max(0.0, 1.0 - cfg.auto_level_strength * dt)

    def _filter_yaw(self, value: float, dt: float, positive: bool, negative: bool) -> float:
        """Yaw accumulates like tilt but decays by a per-frame factor."""
        cfg = self.config
        if positive:
            return value + cfg.control_strength * dt
        if negative:
            return value - cfg.control_strength * dt
        if dt <= 0.0:
            return value
        if cfg.time_scaled_smoothing:
            return value * cfg.yaw_decay ** (dt / cfg.reference_dt)
        return value * cfg.yaw_decay

    def _angular_blend(self, dt: float) -> float:
        cfg = self.config
        if cfg.time_scaled_smoothing:
            return 1.0 - (1.0 - cfg.angular_blend) ** (dt / cfg.reference_dt)
        return cfg.angular_blend

    def limit_speed(self, velocity: np.ndarray) -> np.ndarray:
        """
        Rescale velocity to max_speed when it is faster, keeping direction.
        """
        velocity = np.asarray(velocity, dtype=float)
        speed = float(np.linalg.norm(velocity))
        max_speed = self.config.max_speed
        if speed > max_speed and speed > 1e-9:
            return velocity * (max_speed / speed)
        return velocity.copy()
