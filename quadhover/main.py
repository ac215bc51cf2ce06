"""
Hover Simulation Main Module

Runs the manual-flight frame loop:

    poll input → read kinematics → safety check → controller → apply → step

Each frame the pilot input is sampled first, the controller computes force
and velocity overrides from the current state, and the physics engine then
integrates one step with those commands.
"""

import argparse
import logging
import time
from typing import Optional

import numpy as np

from quadhover.control.flight_controller import ControlOutput, ControlState, FlightController
from quadhover.data_logger import FlightDataLogger
from quadhover.flight_config import get_config
from quadhover.hal.hal import VehicleBody, create_vehicle
from quadhover.input import ControlKey, InputSource, KeyboardInput, ScriptedInput
from quadhover.safety import KinematicsGuard, check_gravity_contract

logger = logging.getLogger(__name__)


class FlightSimulation:
    """
    Frame loop tying one vehicle body, one input source and the controller.

    Args:
        body: Physics-side vehicle
        input_source: Pilot input
        controller: Flight controller (default configuration if None)
        state: Initial control state (spawn defaults if None)
        guard: Kinematics guard (built from the controller's policy if None)
        data_logger: Optional logger that is fed every frame
    """

    def __init__(self, body: VehicleBody, input_source: InputSource,
                 controller: Optional[FlightController] = None,
                 state: Optional[ControlState] = None,
                 guard: Optional[KinematicsGuard] = None,
                 data_logger: Optional[FlightDataLogger] = None):
        self.body = body
        self.input_source = input_source
        self.controller = controller or FlightController()
        self.state = state or ControlState()
        self.guard = guard or KinematicsGuard(self.controller.config.non_finite_policy)
        self.data_logger = data_logger

        check_gravity_contract(body.engine_gravity, self.controller.config.controller_gravity)

        self.frame = 0
        self.sim_time = 0.0
        self.last_output: Optional[ControlOutput] = None

    def step(self) -> ControlOutput:
        """Run one frame and advance the physics world."""
        inputs = self.input_source.poll()
        _status, kinematics = self.guard.check(self.body.read_kinematics())

        output = self.controller.update(self.state, inputs, kinematics)

        self.body.apply_output(output)
        self.body.step()

        if self.data_logger is not None and self.data_logger.is_logging:
            self.data_logger.log_frame(inputs, kinematics, self.state, output)

        self.frame += 1
        self.sim_time += inputs.dt
        self.last_output = output
        return output

    def run(self, duration: Optional[float] = None, realtime: bool = False,
            status_interval: float = 1.0):
        """
        Run the frame loop.

        Args:
            duration: Simulated seconds to run (None runs until interrupted)
            realtime: Sleep so simulated time tracks wall-clock time
            status_interval: Simulated seconds between status lines (0 disables)
        """
        logger.info("Starting flight loop")
        next_status = status_interval
        frame_period = self.body.time_step

        try:
            while duration is None or self.sim_time < duration:
                loop_start = time.time()
                self.step()

                if status_interval and self.sim_time >= next_status:
                    self._print_status()
                    next_status += status_interval

                if realtime:
                    loop_time = time.time() - loop_start
                    if loop_time < frame_period:
                        time.sleep(frame_period - loop_time)

        except KeyboardInterrupt:
            print("\n\nSimulation interrupted by user")

        logger.info(f"Flight loop finished after {self.frame} frames ({self.sim_time:.1f}s)")

    def _print_status(self):
        kin = self.body.read_kinematics()
        pos = kin.position
        vel = kin.linear_velocity
        throttle = self.last_output.throttle if self.last_output else 0.0
        print(f"t={self.sim_time:5.1f}s | "
              f"Pos=[{pos[0]:5.2f}, {pos[1]:5.2f}, {pos[2]:5.2f}]m | "
              f"Speed={np.linalg.norm(vel):4.2f}m/s | "
              f"Target={self.state.target_altitude:5.2f}m | "
              f"Tilt=[{np.degrees(self.state.pitch_input):5.1f}°, {np.degrees(self.state.roll_input):5.1f}°] | "
              f"Throttle={throttle:5.2f}")


def demo_flight_plan(dt: float = 1.0 / 60.0) -> ScriptedInput:
    """
    Scripted manoeuvre for headless runs:

    hover → climb → tip forward/back → bank right/left → yaw left → descend → hover

    Pitch and roll command rates, so each tilt tap is followed by the opposite
    tap to bring the body back near level.
    """
    return ScriptedInput([
        (2.0, []),
        (1.0, [ControlKey.ASCEND]),
        (0.25, [ControlKey.PITCH_FORWARD]),
        (1.5, []),
        (0.25, [ControlKey.PITCH_BACK]),
        (1.5, []),
        (0.25, [ControlKey.ROLL_RIGHT]),
        (1.0, []),
        (0.25, [ControlKey.ROLL_LEFT]),
        (1.0, []),
        (1.0, [ControlKey.YAW_LEFT]),
        (1.0, [ControlKey.DESCEND]),
        (2.0, []),
    ], dt=dt)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Manual quadrotor hover simulation (PyBullet)',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Keyboard (GUI): Space/Shift altitude, W/S pitch, A/D roll, Q/E yaw\n"
            "Without --gui the scripted demo flight is flown."
        )
    )

    parser.add_argument('--gui', action='store_true',
                        help='Show PyBullet GUI window and fly with the keyboard')
    parser.add_argument('--script', action='store_true',
                        help='Fly the scripted demo even with the GUI open')
    parser.add_argument('--duration', type=float, default=None,
                        help='Simulated seconds to run (default: demo length, or forever with --gui)')
    parser.add_argument('--rate', type=float, default=60.0,
                        help='Control/physics rate in Hz (default: 60)')
    parser.add_argument('--profile', type=str, default='default',
                        choices=['default', 'time_scaled', 'strict'],
                        help='Flight configuration profile (default: default)')
    parser.add_argument('--log', action='store_true',
                        help='Write a CSV flight log')
    parser.add_argument('--log-dir', type=str, default='flight_logs',
                        help='Directory for CSV flight logs (default: flight_logs)')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Debug logging')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s - %(name)s - %(message)s'
    )

    if args.rate <= 0:
        parser.error("--rate must be positive")

    dt = 1.0 / args.rate
    config = get_config(args.profile)
    engine_gravity = 0.0 if config.controller_gravity else config.gravity

    body = create_vehicle('pybullet', gui=args.gui, time_step=dt, engine_gravity=engine_gravity)

    duration = args.duration
    if args.gui and not args.script:
        input_source = KeyboardInput(client=body.client, fixed_dt=dt)
    else:
        input_source = demo_flight_plan(dt)
        if duration is None:
            duration = input_source.duration

    data_logger = None
    if args.log:
        data_logger = FlightDataLogger(args.log_dir)
        data_logger.start_logging("hover")

    sim = FlightSimulation(body, input_source, FlightController(config), data_logger=data_logger)

    try:
        sim.run(duration=duration, realtime=args.gui)
    finally:
        if data_logger is not None:
            data_logger.stop_logging()
        input_source.close()
        body.disconnect()
        stats = sim.guard.get_statistics()
        print("\n✓ Simulation complete!")
        print(f"  Frames: {sim.frame}")
        print(f"  Simulated time: {sim.sim_time:.1f}s")
        print(f"  Sanitized frames: {stats['sanitized_frames']}")


if __name__ == "__main__":
    main()
