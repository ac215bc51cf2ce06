"""
Pilot Input Module

Maps physical inputs to the eight logical controls consumed by the flight
controller. The controller only sees FrameInputs, so any device (keyboard,
scripted test sequence, RC receiver) can drive it through InputSource.

Controls:
- Ascend / Descend: raise or lower the altitude target
- Pitch forward / back, Roll left / right: build up a tilt command
- Yaw left / right: build up a yaw-rate command
"""

import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

# Try to import pybullet (keyboard events come from its GUI window)
try:
    import pybullet as p
    PYBULLET_AVAILABLE = True
except ImportError:
    p = None
    PYBULLET_AVAILABLE = False


class ControlKey(Enum):
    """Logical pilot controls"""
    ASCEND = "ascend"
    DESCEND = "descend"
    PITCH_FORWARD = "pitch_forward"
    PITCH_BACK = "pitch_back"
    ROLL_LEFT = "roll_left"
    ROLL_RIGHT = "roll_right"
    YAW_LEFT = "yaw_left"
    YAW_RIGHT = "yaw_right"


@dataclass(frozen=True)
class FrameInputs:
    """Active controls for one frame plus the elapsed time since the last one."""
    dt: float
    active: FrozenSet[ControlKey] = field(default_factory=frozenset)

    def __post_init__(self):
        if not math.isfinite(self.dt) or self.dt < 0:
            raise ValueError(f"Invalid frame time: {self.dt}. Must be finite and >= 0")
        object.__setattr__(self, 'active', frozenset(self.active))

    def is_active(self, key: ControlKey) -> bool:
        return key in self.active


class InputSource(ABC):
    """
    Capability interface for pilot input.

    Subclasses answer "is this control held" and "how long was the last
    frame"; poll() packages both into a FrameInputs.
    """

    def refresh(self) -> None:
        """Sample the underlying device once per frame (optional hook)."""
        return None

    @abstractmethod
    def is_active(self, key: ControlKey) -> bool:
        """Return True while the logical control is held."""

    @abstractmethod
    def elapsed(self) -> float:
        """Elapsed time since the previous frame in seconds."""

    def poll(self) -> FrameInputs:
        """Build the FrameInputs for the current frame."""
        self.refresh()
        active = frozenset(key for key in ControlKey if self.is_active(key))
        return FrameInputs(dt=self.elapsed(), active=active)

    def close(self) -> None:
        return None


# ============================================================================
# SCRIPTED INPUT
# ============================================================================

class ScriptedInput(InputSource):
    """
    Replays a fixed sequence of (duration_s, keys) segments at a constant dt.

    Once the script runs out no controls are active, so the vehicle settles
    back into hover.
    """

    # Frame times are k * dt; absorb float error at segment boundaries
    TIME_EPSILON = 1e-9

    def __init__(self, segments: Sequence[Tuple[float, Iterable[ControlKey]]], dt: float = 1.0 / 60.0):
        if dt <= 0:
            raise ValueError(f"Invalid dt: {dt}. Must be positive")
        self._segments: List[Tuple[float, FrozenSet[ControlKey]]] = [
            (float(duration), frozenset(keys)) for duration, keys in segments
        ]
        self._dt = float(dt)
        self._frame = -1
        self._current: FrozenSet[ControlKey] = frozenset()

    @property
    def duration(self) -> float:
        """Total scripted time in seconds."""
        return sum(duration for duration, _ in self._segments)

    @property
    def finished(self) -> bool:
        """True once the frames played so far cover the whole script."""
        return (self._frame + 1) * self._dt >= self.duration - self.TIME_EPSILON

    def keys_at(self, t: float) -> FrozenSet[ControlKey]:
        """Controls held at script time t."""
        end = 0.0
        for duration, keys in self._segments:
            end += duration
            if t < end - self.TIME_EPSILON:
                return keys
        return frozenset()

    def refresh(self) -> None:
        self._frame += 1
        self._current = self.keys_at(self._frame * self._dt)

    def is_active(self, key: ControlKey) -> bool:
        return key in self._current

    def elapsed(self) -> float:
        return self._dt


# ============================================================================
# KEYBOARD INPUT (PyBullet GUI)
# ============================================================================

def default_key_map() -> Dict[ControlKey, int]:
    """Space/Shift altitude, W/S pitch, A/D roll, Q/E yaw."""
    return {
        ControlKey.ASCEND: ord(' '),
        ControlKey.DESCEND: p.B3G_SHIFT,
        ControlKey.PITCH_FORWARD: ord('w'),
        ControlKey.PITCH_BACK: ord('s'),
        ControlKey.ROLL_LEFT: ord('a'),
        ControlKey.ROLL_RIGHT: ord('d'),
        ControlKey.YAW_LEFT: ord('q'),
        ControlKey.YAW_RIGHT: ord('e'),
    }


class KeyboardInput(InputSource):
    """
    Keyboard input from the PyBullet GUI window.

    Args:
        client: PyBullet physics client id
        key_map: Mapping of logical control to PyBullet key code
        fixed_dt: If given, elapsed() always returns this value instead of
                  wall-clock time (keeps the simulation deterministic)
    """

    KEY_IS_DOWN = 1

    def __init__(self, client: int = 0, key_map: Optional[Dict[ControlKey, int]] = None,
                 fixed_dt: Optional[float] = None, clock=time.monotonic):
        if not PYBULLET_AVAILABLE:
            raise RuntimeError("PyBullet not installed. Install with: pip install pybullet")

        self.client = client
        self.key_map = key_map or default_key_map()
        self.fixed_dt = fixed_dt
        self._clock = clock
        self._last_time = clock()
        self._dt = 0.0
        self._events: Dict[int, int] = {}

        # W/S/A/D are GUI hotkeys by default (wireframe, shadows, ...)
        p.configureDebugVisualizer(p.COV_ENABLE_KEYBOARD_SHORTCUTS, 0, physicsClientId=self.client)
        logger.info("Keyboard input ready: Space/Shift altitude, W/S pitch, A/D roll, Q/E yaw")

    def refresh(self) -> None:
        self._events = p.getKeyboardEvents(physicsClientId=self.client)
        now = self._clock()
        self._dt = max(0.0, now - self._last_time)
        self._last_time = now

    def is_active(self, key: ControlKey) -> bool:
        code = self.key_map.get(key)
        if code is None:
            return False
        return bool(self._events.get(code, 0) & self.KEY_IS_DOWN)

    def elapsed(self) -> float:
        if self.fixed_dt is not None:
            return self.fixed_dt
        return self._dt
