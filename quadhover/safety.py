"""
Flight Safety Checks

Boundary checks around the hover controller:
- Non-finite kinematic snapshots (NaN/Inf from a bad orientation or a
  physics blow-up) are zeroed out or rejected before they reach the control law
- Gravity contract: gravity must be applied by the physics engine or by the
  controller's compensation term, never both and never neither
"""

import logging
from enum import Enum
from typing import Any, Dict, Tuple

import numpy as np

from quadhover.control.flight_controller import KinematicSnapshot
from quadhover.control.quaternion_math import IDENTITY
from quadhover.exceptions import GravityConfigurationError, NonFiniteStateError

logger = logging.getLogger(__name__)


class SafetyStatus(Enum):
    """Safety status levels"""
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


class NonFinitePolicy(Enum):
    """What to do with a snapshot containing NaN or Inf"""
    ZERO = "zero"
    REJECT = "reject"


class KinematicsGuard:
    """
    Validates kinematic snapshots before they reach the controller.

    With the 'zero' policy, non-finite vector components are replaced by 0 and
    a non-finite or degenerate orientation by the identity rotation. With
    'reject', NonFiniteStateError is raised instead.
    """

    # Orientations shorter than this cannot be normalised meaningfully
    MIN_QUATERNION_NORM = 1e-6

    def __init__(self, policy: str = 'zero'):
        self.policy = NonFinitePolicy(policy)
        self.status = SafetyStatus.NORMAL

        # Statistics
        self.checks = 0
        self.sanitized_frames = 0
        self.rejected_frames = 0

    def check(self, snapshot: KinematicSnapshot) -> Tuple[SafetyStatus, KinematicSnapshot]:
        """
        Check a snapshot for non-finite values.

        Args:
            snapshot: Kinematic snapshot read from the physics engine

        Returns:
            Tuple of (safety_status, snapshot_to_use)
        """
        self.checks += 1

        bad_fields = [
            name for name in ('position', 'orientation', 'linear_velocity', 'angular_velocity')
            if not np.all(np.isfinite(getattr(snapshot, name)))
        ]
        degenerate = (
            'orientation' not in bad_fields
            and np.linalg.norm(snapshot.orientation) < self.MIN_QUATERNION_NORM
        )

        if not bad_fields and not degenerate:
            self.status = SafetyStatus.NORMAL
            return SafetyStatus.NORMAL, snapshot

        if self.policy is NonFinitePolicy.REJECT:
            self.rejected_frames += 1
            self.status = SafetyStatus.CRITICAL
            logger.critical(f"Non-finite kinematics in {bad_fields or ['orientation']} - rejecting frame")
            raise NonFiniteStateError(f"Non-finite kinematic snapshot: {', '.join(bad_fields) or 'orientation'}")

        self.sanitized_frames += 1
        self.status = SafetyStatus.WARNING
        logger.warning(f"Non-finite kinematics in {bad_fields or ['orientation']} - zeroing")
        return SafetyStatus.WARNING, sanitize_snapshot(snapshot, self.MIN_QUATERNION_NORM)

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get guard statistics.

        Returns:
            Dictionary with check counts and current status
        """
        return {
            'checks': self.checks,
            'sanitized_frames': self.sanitized_frames,
            'rejected_frames': self.rejected_frames,
            'policy': self.policy.value,
            'status': self.status.value,
        }


def sanitize_snapshot(snapshot: KinematicSnapshot, min_quaternion_norm: float = 1e-6) -> KinematicSnapshot:
    """Copy of the snapshot with non-finite values zeroed and orientation repaired."""
    orientation = snapshot.orientation
    if not np.all(np.isfinite(orientation)) or np.linalg.norm(orientation) < min_quaternion_norm:
        orientation = IDENTITY.copy()

    return KinematicSnapshot(
        position=np.nan_to_num(snapshot.position, nan=0.0, posinf=0.0, neginf=0.0),
        orientation=orientation,
        linear_velocity=np.nan_to_num(snapshot.linear_velocity, nan=0.0, posinf=0.0, neginf=0.0),
        angular_velocity=np.nan_to_num(snapshot.angular_velocity, nan=0.0, posinf=0.0, neginf=0.0),
    )


def check_gravity_contract(engine_gravity: float, controller_gravity: bool):
    """
    Make sure gravity acts on the vehicle exactly once.

    Args:
        engine_gravity: Magnitude of the gravity the physics engine applies to the vehicle
        controller_gravity: Whether the controller emits its (0, -g, 0) term

    Raises:
        GravityConfigurationError: gravity applied twice or not at all
    """
    engine_applies = abs(engine_gravity) > 1e-9

    if engine_applies and controller_gravity:
        logger.critical(f"Gravity applied twice: engine {engine_gravity:.2f} m/s^2 + controller term")
        raise GravityConfigurationError(
            "Physics engine gravity must be zero when the controller applies gravity"
        )

    if not engine_applies and not controller_gravity:
        logger.critical("Gravity not applied: engine gravity is zero and controller term disabled")
        raise GravityConfigurationError(
            "Either the physics engine or the controller must apply gravity"
        )

    logger.info(f"Gravity handled by {'controller' if controller_gravity else 'physics engine'}")
