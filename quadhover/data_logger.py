"""
Flight Data Logger

Logs one row per control frame to CSV for post-flight analysis (PlotJuggler,
pandas, a spreadsheet): pilot input, kinematics, controller state and the
commands written to the physics engine.
"""

import csv
import logging
import os
import statistics
import time
from typing import Any, Dict, List, Optional

import numpy as np

from quadhover.control.flight_controller import ControlOutput, ControlState, KinematicSnapshot
from quadhover.input import FrameInputs

logger = logging.getLogger(__name__)


HEADER = [
    'sim_time',                              # seconds of simulated flight
    'dt',
    'keys',                                  # active controls, '|' separated
    'pos_x', 'pos_y', 'pos_z',               # m (Y-up)
    'vel_x', 'vel_y', 'vel_z',               # m/s
    'target_altitude',
    'pitch_input', 'roll_input', 'yaw_input',
    'throttle', 'altitude_error',
    'force_x', 'force_y', 'force_z',         # N
    'angvel_x', 'angvel_y', 'angvel_z',      # rad/s commanded
]


class FlightDataLogger:
    """
    Flight data logger that records controller frames.

    Creates CSV files with simulated timestamps for post-flight analysis.
    """

    def __init__(self, log_directory: str = "flight_logs", auto_timestamp: bool = True):
        """
        Initialize the flight data logger.

        Args:
            log_directory: Directory to store log files
            auto_timestamp: If True, add timestamp to log filename
        """
        self.log_directory = log_directory
        self.auto_timestamp = auto_timestamp
        self.log_file: Optional[str] = None
        self.csv_file = None
        self.csv_writer = None
        self.sim_time: float = 0.0
        self.log_count: int = 0
        self.is_logging: bool = False

        if not os.path.exists(log_directory):
            os.makedirs(log_directory)
            logger.info(f"Created log directory: {log_directory}")

    def start_logging(self, flight_name: str = "flight") -> str:
        """
        Start logging to a new file.

        Args:
            flight_name: Base name for the log file

        Returns:
            Path to the created log file
        """
        if self.is_logging:
            logger.warning("Already logging. Stop current log first.")
            return self.log_file

        if self.auto_timestamp:
            timestamp = time.strftime("%Y%m%d_%H%M%S")
            filename = f"{flight_name}_{timestamp}.csv"
        else:
            filename = f"{flight_name}.csv"

        self.log_file = os.path.join(self.log_directory, filename)

        self.csv_file = open(self.log_file, 'w', newline='')
        self.csv_writer = csv.writer(self.csv_file)
        self.csv_writer.writerow(HEADER)

        self.sim_time = 0.0
        self.log_count = 0
        self.is_logging = True

        logger.info(f"Started logging to: {self.log_file}")
        return self.log_file

    def log_frame(self, inputs: FrameInputs, kinematics: KinematicSnapshot,
                  state: ControlState, output: ControlOutput):
        """
        Log one control frame.

        Args:
            inputs: Pilot input for the frame
            kinematics: Snapshot the controller acted on
            state: Control state after the update
            output: Commands produced for the physics engine
        """
        if not self.is_logging:
            logger.warning("Not currently logging. Call start_logging() first.")
            return

        self.sim_time += inputs.dt
        keys = '|'.join(sorted(key.value for key in inputs.active))

        row = [
            round(self.sim_time, 6),
            inputs.dt,
            keys,
            *np.round(kinematics.position, 6).tolist(),
            *np.round(kinematics.linear_velocity, 6).tolist(),
            state.target_altitude,
            state.pitch_input,
            state.roll_input,
            state.yaw_input,
            output.throttle,
            output.altitude_error,
            *np.round(output.force, 6).tolist(),
            *np.round(output.angular_velocity, 6).tolist(),
        ]

        self.csv_writer.writerow(row)
        self.log_count += 1

        # Flush periodically to ensure data is written
        if self.log_count % 100 == 0:
            self.csv_file.flush()

    def stop_logging(self):
        """Stop logging and close the file."""
        if not self.is_logging:
            logger.warning("Not currently logging.")
            return

        if self.csv_file:
            self.csv_file.close()
            self.csv_file = None
            self.csv_writer = None

        logger.info(f"Stopped logging. {self.log_count} records written to {self.log_file}")
        logger.info(f"Flight duration: {self.sim_time:.2f} seconds (simulated)")

        self.is_logging = False

    def get_log_files(self) -> List[str]:
        """
        Get list of all log files in the log directory.

        Returns:
            List of log file paths
        """
        if not os.path.exists(self.log_directory):
            return []

        files = [
            os.path.join(self.log_directory, f)
            for f in os.listdir(self.log_directory)
            if f.endswith('.csv')
        ]
        return sorted(files)

    def __del__(self):
        """Ensure file is closed when logger is destroyed."""
        if self.is_logging:
            self.stop_logging()


def _summary(values: List[float]) -> Dict[str, float]:
    return {
        "min": min(values),
        "max": max(values),
        "avg": statistics.mean(values),
    }


class LoggerStats:
    """Calculate statistics from logged data for quick analysis."""

    @staticmethod
    def analyze_log(log_file: str) -> Dict[str, Any]:
        """
        Analyze a log file and return statistics.

        Args:
            log_file: Path to CSV log file

        Returns:
            Dictionary with statistics about the flight
        """
        if not os.path.exists(log_file):
            return {"error": f"Log file not found: {log_file}"}

        stats = {
            "file": log_file,
            "record_count": 0,
            "duration_seconds": 0.0,
            "altitude_stats": {},
            "throttle_stats": {},
            "max_speed": 0.0,
        }

        altitudes, throttles, speeds = [], [], []
        with open(log_file, 'r', newline='') as f:
            for row in csv.DictReader(f):
                stats["record_count"] += 1
                stats["duration_seconds"] = float(row['sim_time'])
                altitudes.append(float(row['pos_y']))
                throttles.append(float(row['throttle']))
                speeds.append(float(np.linalg.norm([
                    float(row['vel_x']), float(row['vel_y']), float(row['vel_z'])
                ])))

        if altitudes:
            stats["altitude_stats"] = _summary(altitudes)
            stats["throttle_stats"] = _summary(throttles)
            stats["max_speed"] = max(speeds)

        return stats
