"""
quadhover - manual quadrotor hover and flight control on a rigid-body
physics simulator.
"""

from quadhover.flight_config import FlightConfig, get_config
from quadhover.input import ControlKey, FrameInputs, InputSource, ScriptedInput
from quadhover.control import FlightController, ControlState, KinematicSnapshot, ControlOutput

__version__ = "0.1.0"

__all__ = [
    'FlightConfig', 'get_config',
    'ControlKey', 'FrameInputs', 'InputSource', 'ScriptedInput',
    'FlightController', 'ControlState', 'KinematicSnapshot', 'ControlOutput',
]
