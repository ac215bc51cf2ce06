"""Physics Abstraction Layer"""

from .hal import VehicleBody, create_vehicle

__all__ = ['VehicleBody', 'create_vehicle']
