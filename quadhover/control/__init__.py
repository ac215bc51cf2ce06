"""
Hover control core: altitude hold, auto-levelling attitude filter and
force/angular-velocity synthesis for a manually flown quadrotor.
"""

from .flight_controller import (
    FlightController, ControlState, KinematicSnapshot, ControlOutput
)

__all__ = ['FlightController', 'ControlState', 'KinematicSnapshot', 'ControlOutput']
