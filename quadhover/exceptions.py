# quadhover/exceptions.py

class FlightControlError(Exception):
    """Base exception for flight control errors."""
    pass

class NonFiniteStateError(FlightControlError):
    """Raised when a kinematic snapshot contains NaN or infinite values."""
    pass

class GravityConfigurationError(FlightControlError):
    """Raised when gravity is applied twice, or not at all, for a vehicle."""
    pass
