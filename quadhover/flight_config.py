"""
Flight Configuration

Gains, limits and feel constants for the hover controller. Named profiles
make it easy to switch behaviour without touching the control code.
"""

import dataclasses
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlightConfig:
    """Controller tuning parameters (SI units, Y-up world)."""

    # Altitude hold
    altitude_rate: float = 4.0          # m/s of target change while ascend/descend held
    min_altitude: float = 1.0
    max_altitude: float = 10.0
    altitude_kp: float = 15.0
    altitude_kd: float = 6.0
    hover_thrust: float = 9.81          # unit mass * standard gravity
    min_thrust: float = 5.0
    max_thrust: float = 20.0

    # Attitude command filtering
    control_strength: float = 4.0       # rad/s of command build-up while a key is held
    auto_level_strength: float = 20.0   # 1/s exponential decay toward level
    yaw_decay: float = 0.8              # per-frame multiplier when yaw is idle
    max_tilt: float = 0.26              # rad (~15 degrees)

    # Rate synthesis
    tilt_rate_gain: float = 8.0
    yaw_rate_gain: float = 3.0
    angular_blend: float = 0.7

    # Speed limit
    max_speed: float = 3.0

    # Gravity handling: when True the controller emits (0, -gravity, 0) and the
    # physics engine must apply no gravity to the vehicle.
    gravity: float = 9.81
    controller_gravity: bool = True

    # Frame-rate independent smoothing (off reproduces the per-frame feel)
    time_scaled_smoothing: bool = False
    reference_dt: float = 1.0 / 60.0

    # 'zero' sanitises non-finite snapshots, 'reject' raises
    non_finite_policy: str = 'zero'

    def replace(self, **overrides) -> 'FlightConfig':
        """Return a copy with the given fields overridden."""
        return dataclasses.replace(self, **overrides)


# ============================================================================
# PROFILES
# ============================================================================

DEFAULT_CONFIG = FlightConfig()

TIME_SCALED_CONFIG = FlightConfig(time_scaled_smoothing=True)

STRICT_CONFIG = FlightConfig(non_finite_policy='reject')

PROFILES = {
    'default': DEFAULT_CONFIG,
    'time_scaled': TIME_SCALED_CONFIG,
    'strict': STRICT_CONFIG,
}


def get_config(profile: str = None) -> FlightConfig:
    """
    Get flight configuration for the named profile.

    Args:
        profile: Profile name ('default', 'time_scaled', 'strict').
                 If None, the default profile is used.

    Returns:
        FlightConfig instance
    """
    if profile is None:
        profile = 'default'

    config = PROFILES.get(profile)
    if config is None:
        available = ', '.join(PROFILES.keys())
        logger.error(f"Invalid profile '{profile}', available: {available}")
        raise ValueError(f"Unknown profile: {profile}")

    logger.info(f"Loaded flight profile: {profile}")
    return config
