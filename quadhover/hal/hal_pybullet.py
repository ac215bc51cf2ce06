"""
PyBullet Simulator Vehicle

Rigid-body quadrotor for the hover controller, simulated with PyBullet.

- Box body (1.0 x 0.4 x 1.0 m, unit mass) spawned 2 m above the origin
- Ground slab 1 m below the origin
- Strong linear/angular damping so the vehicle does not drift
- Follow camera in GUI mode

PyBullet is Z-up with [x, y, z, w] quaternions; everything crossing this
module's boundary is converted to the controller's Y-up, [w, x, y, z] frame.
"""

import logging
import math
import numpy as np
from typing import Sequence

from quadhover.control.flight_controller import KinematicSnapshot
from quadhover.control.quaternion_math import (
    pybullet_to_quaternion, quaternion_to_pybullet,
    zup_to_yup_quaternion, yup_to_zup_quaternion,
    zup_to_yup_vector, yup_to_zup_vector, IDENTITY
)
from quadhover.hal.hal import VehicleBody

# Configure logging
logger = logging.getLogger(__name__)

# Try to import pybullet
try:
    import pybullet as p
    PYBULLET_AVAILABLE = True
except ImportError:
    logger.warning(
        "PyBullet not installed or incompatible Python version. "
        "Install with: pip install pybullet"
    )
    PYBULLET_AVAILABLE = False
    p = None


def bullet_damping(rate: float) -> float:
    """
    Convert a per-second damping rate into Bullet's damping coefficient.

    Bullet scales velocity by (1 - d)^dt each step, so d = 1 - exp(-rate)
    gives the same exponential decay as v' = -rate * v.
    """
    return 1.0 - math.exp(-rate)


class PyBulletVehicle(VehicleBody):
    """
    PyBullet-backed quadrotor body.

    Args:
        gui: Show PyBullet GUI window
        time_step: Physics step (s), one step per control frame
        engine_gravity: Gravity (m/s^2) applied by PyBullet itself. Keep at 0
                        while the controller emits its own gravity term.
        start_position: Spawn position [x, y, z] in the Y-up frame
        follow_camera: Re-target the GUI camera at the vehicle every step
    """

    # Vehicle geometry (Y-up half extents)
    MASS = 1.0  # kg, the hover thrust assumes unit mass
    HALF_EXTENTS = (0.5, 0.2, 0.5)
    START_POSITION = (0.0, 2.0, 0.0)

    # Ground slab (Y-up)
    GROUND_HEIGHT = -1.0
    GROUND_HALF_EXTENTS = (100.0, 0.1, 100.0)

    # Damping rates (1/s)
    LINEAR_DAMPING = 10.0
    ANGULAR_DAMPING = 15.0

    # Camera offset from the vehicle (Y-up)
    CAMERA_OFFSET = (-5.0, 5.0, 10.0)

    def __init__(self, gui: bool = False, time_step: float = 1.0 / 60.0,
                 engine_gravity: float = 0.0, start_position: Sequence[float] = None,
                 follow_camera: bool = True):
        if not PYBULLET_AVAILABLE:
            raise RuntimeError(
                "PyBullet not installed. Install with: pip install pybullet"
            )
        if time_step <= 0:
            raise ValueError(f"Invalid time step: {time_step}. Must be positive")

        self.gui = gui
        self.follow_camera = follow_camera and gui
        self._time_step = float(time_step)
        self._engine_gravity = float(engine_gravity)
        self.start_pos = np.array(start_position if start_position is not None else self.START_POSITION, dtype=float)

        # Connect to PyBullet
        if gui:
            self.client = p.connect(p.GUI)
            logger.info("PyBullet GUI connected")
        else:
            self.client = p.connect(p.DIRECT)
            logger.info("PyBullet headless mode connected")

        # Configure simulation
        p.setGravity(0, 0, -self._engine_gravity, physicsClientId=self.client)
        p.setRealTimeSimulation(0, physicsClientId=self.client)
        p.setTimeStep(self._time_step, physicsClientId=self.client)

        self.ground_id = self._create_ground()
        self.drone_id = self._create_vehicle()

        # Pending commands for the next step
        self._force = np.zeros(3)
        self._linear_velocity = None
        self._angular_velocity = None

        self.sim_time = 0.0
        self.step_count = 0

        logger.info(f"PyBullet vehicle initialized at {self.start_pos.tolist()} "
                    f"(dt={self._time_step:.4f}s, engine gravity={self._engine_gravity:.2f})")

    def _create_ground(self) -> int:
        """Create the static ground slab"""
        half_extents = np.abs(yup_to_zup_vector(self.GROUND_HALF_EXTENTS)).tolist()
        collision_shape = p.createCollisionShape(
            p.GEOM_BOX,
            halfExtents=half_extents,
            physicsClientId=self.client
        )
        visual_shape = p.createVisualShape(
            p.GEOM_BOX,
            halfExtents=half_extents,
            rgbaColor=[0.4, 0.5, 0.4, 1.0],
            physicsClientId=self.client
        )
        return p.createMultiBody(
            baseMass=0,
            baseCollisionShapeIndex=collision_shape,
            baseVisualShapeIndex=visual_shape,
            basePosition=yup_to_zup_vector([0.0, self.GROUND_HEIGHT, 0.0]).tolist(),
            physicsClientId=self.client
        )

    def _create_vehicle(self) -> int:
        """Create the quadrotor body"""
        half_extents = np.abs(yup_to_zup_vector(self.HALF_EXTENTS)).tolist()
        collision_shape = p.createCollisionShape(
            p.GEOM_BOX,
            halfExtents=half_extents,
            physicsClientId=self.client
        )
        visual_shape = p.createVisualShape(
            p.GEOM_BOX,
            halfExtents=half_extents,
            rgbaColor=[0.2, 0.2, 0.8, 1.0],
            physicsClientId=self.client
        )
        drone_id = p.createMultiBody(
            baseMass=self.MASS,
            baseCollisionShapeIndex=collision_shape,
            baseVisualShapeIndex=visual_shape,
            basePosition=yup_to_zup_vector(self.start_pos).tolist(),
            baseOrientation=quaternion_to_pybullet(yup_to_zup_quaternion(IDENTITY)).tolist(),
            physicsClientId=self.client
        )
        p.changeDynamics(
            drone_id,
            -1,
            linearDamping=bullet_damping(self.LINEAR_DAMPING),
            angularDamping=bullet_damping(self.ANGULAR_DAMPING),
            physicsClientId=self.client
        )
        return drone_id

    # -- VehicleBody interface -------------------------------------------------

    @property
    def engine_gravity(self) -> float:
        return self._engine_gravity

    @property
    def time_step(self) -> float:
        return self._time_step

    def read_kinematics(self) -> KinematicSnapshot:
        pos, orn = p.getBasePositionAndOrientation(self.drone_id, physicsClientId=self.client)
        vel, ang_vel = p.getBaseVelocity(self.drone_id, physicsClientId=self.client)

        return KinematicSnapshot(
            position=zup_to_yup_vector(pos),
            orientation=zup_to_yup_quaternion(pybullet_to_quaternion(orn)),
            linear_velocity=zup_to_yup_vector(vel),
            angular_velocity=zup_to_yup_vector(ang_vel),
        )

    def apply_force(self, force: np.ndarray):
        self._force = self._force + np.asarray(force, dtype=float)

    def set_angular_velocity(self, angular_velocity: np.ndarray):
        self._angular_velocity = np.asarray(angular_velocity, dtype=float)

    def set_linear_velocity(self, linear_velocity: np.ndarray):
        self._linear_velocity = np.asarray(linear_velocity, dtype=float)

    def step(self):
        """Write pending commands and advance the simulation one step"""
        if self._linear_velocity is not None or self._angular_velocity is not None:
            vel, ang_vel = p.getBaseVelocity(self.drone_id, physicsClientId=self.client)
            if self._linear_velocity is not None:
                vel = yup_to_zup_vector(self._linear_velocity).tolist()
            if self._angular_velocity is not None:
                ang_vel = yup_to_zup_vector(self._angular_velocity).tolist()
            p.resetBaseVelocity(
                self.drone_id,
                linearVelocity=vel,
                angularVelocity=ang_vel,
                physicsClientId=self.client
            )

        # Forces are applied at the centre of mass; PyBullet clears them after each step
        pos, _ = p.getBasePositionAndOrientation(self.drone_id, physicsClientId=self.client)
        p.applyExternalForce(
            self.drone_id,
            -1,
            yup_to_zup_vector(self._force).tolist(),
            list(pos),
            p.WORLD_FRAME,
            physicsClientId=self.client
        )

        p.stepSimulation(physicsClientId=self.client)

        self._force = np.zeros(3)
        self._linear_velocity = None
        self._angular_velocity = None
        self.sim_time += self._time_step
        self.step_count += 1

        if self.follow_camera:
            self._update_camera()

    def _update_camera(self):
        """Keep the GUI camera at a fixed offset, looking at the vehicle"""
        pos, _ = p.getBasePositionAndOrientation(self.drone_id, physicsClientId=self.client)
        ox, oy, oz = yup_to_zup_vector(self.CAMERA_OFFSET)
        distance = math.sqrt(ox * ox + oy * oy + oz * oz)
        p.resetDebugVisualizerCamera(
            cameraDistance=distance,
            cameraYaw=math.degrees(math.atan2(ox, -oy)),
            cameraPitch=-math.degrees(math.asin(oz / distance)),
            cameraTargetPosition=list(pos),
            physicsClientId=self.client
        )

    def reset(self):
        """Put the vehicle back at its spawn pose, at rest"""
        p.resetBasePositionAndOrientation(
            self.drone_id,
            yup_to_zup_vector(self.start_pos).tolist(),
            quaternion_to_pybullet(yup_to_zup_quaternion(IDENTITY)).tolist(),
            physicsClientId=self.client
        )
        p.resetBaseVelocity(self.drone_id, [0, 0, 0], [0, 0, 0], physicsClientId=self.client)
        self._force = np.zeros(3)
        self._linear_velocity = None
        self._angular_velocity = None
        logger.info("Vehicle reset to spawn pose")

    def disconnect(self):
        """Clean up simulation"""
        p.disconnect(physicsClientId=self.client)
        logger.info("PyBullet disconnected")
