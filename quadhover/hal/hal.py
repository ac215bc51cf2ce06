"""
Physics Abstraction Layer

The flight controller never talks to a physics engine directly. A vehicle
body exposes ground-truth kinematics for reading, plus a force accumulator
and velocity overrides for writing, so the frame loop can run against
PyBullet or any other rigid-body engine (or a test double).

Coordinate frame: Y-up world, quaternions as [w, x, y, z].
"""

import logging
from abc import ABC, abstractmethod

import numpy as np

from quadhover.control.flight_controller import ControlOutput, KinematicSnapshot

logger = logging.getLogger(__name__)


class VehicleBody(ABC):
    """Abstract rigid-body vehicle interface"""

    @abstractmethod
    def read_kinematics(self) -> KinematicSnapshot:
        """Current world position, orientation and velocities"""
        pass

    @abstractmethod
    def apply_force(self, force: np.ndarray):
        """Accumulate a world-space force for the next integration step"""
        pass

    @abstractmethod
    def set_angular_velocity(self, angular_velocity: np.ndarray):
        """Overwrite the body's angular velocity"""
        pass

    @abstractmethod
    def set_linear_velocity(self, linear_velocity: np.ndarray):
        """Overwrite the body's linear velocity"""
        pass

    @abstractmethod
    def step(self):
        """Advance the physics world by one frame"""
        pass

    @property
    @abstractmethod
    def engine_gravity(self) -> float:
        """Gravity magnitude (m/s^2) the engine itself applies to this body"""
        pass

    @property
    @abstractmethod
    def time_step(self) -> float:
        """Physics step length in seconds"""
        pass

    def apply_output(self, output: ControlOutput):
        """Write a controller output into the engine for the coming step."""
        self.apply_force(output.force)
        self.set_angular_velocity(output.angular_velocity)
        self.set_linear_velocity(output.linear_velocity)

    def disconnect(self):
        """Release engine resources (optional)"""
        return None


# ============================================================================
# FACTORY
# ============================================================================

def create_vehicle(backend: str = 'pybullet', **kwargs) -> VehicleBody:
    """
    Create a simulated vehicle for the given physics backend.

    Args:
        backend: Physics backend name (currently only 'pybullet')
        **kwargs: Passed to the backend's vehicle constructor

    Returns:
        VehicleBody instance

    Raises:
        ValueError: If the backend is unknown
    """
    if backend == 'pybullet':
        from quadhover.hal.hal_pybullet import PyBulletVehicle
        return PyBulletVehicle(**kwargs)

    logger.error(f"Invalid physics backend '{backend}', available: pybullet")
    raise ValueError(f"Unknown physics backend: {backend}")
