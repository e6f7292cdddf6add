"""
Estimator configuration.

Configuration is read once when an estimator is built and never mutated
by the filter. It bundles:

    - process model noise parameters (gyro/accelerometer noise and drift,
      angular acceleration and velocity random walk),
    - which state blocks are estimated,
    - an optional preset global reference,
    - the measurement models to register, keyed by name.

Measurements are described by plain dictionaries so that a configuration
can be stored as JSON:

    {
        "gyro_stddev": 0.01,
        "measurements": {
            "gps": {"type": "gps", "position_stddev": 5.0},
            "baro": {"type": "baro", "qnh": 101325.0}
        }
    }

``type`` defaults to the measurement name. Angles (reference latitude,
longitude, heading, magnetic declination and inclination) are radians.
"""

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

from pose_estimation.coords.global_reference import GlobalReference
from pose_estimation.measurements.base import Measurement
from pose_estimation.measurements.gps import GPS
from pose_estimation.measurements.gravity import Gravity
from pose_estimation.measurements.height import Baro, Height
from pose_estimation.measurements.magnetic import Magnetic
from pose_estimation.measurements.rate import Rate
from pose_estimation.measurements.zero_rate import ZeroRate, ZeroVelocity
from pose_estimation.models.bias_models import AccelerometerModel, GyroModel
from pose_estimation.models.system_model import GenericQuaternionSystemModel
from pose_estimation.state import StateBlock

MEASUREMENT_TYPES = {
    "gps": GPS,
    "height": Height,
    "baro": Baro,
    "magnetic": Magnetic,
    "rate": Rate,
    "gravity": Gravity,
    "zero_rate": ZeroRate,
    "zero_velocity": ZeroVelocity,
}


@dataclass(frozen=True)
class EstimatorConfig:
    """
    Parameters of a pose estimator.

    Attributes:
        gravity: Gravity magnitude (m/s²); standard gravity when None.
        angular_acceleration_stddev: Rate state process noise (rad/s²).
        velocity_stddev: Position random-walk noise (m/s).
        gyro_stddev: Gyro white noise (rad/s).
        gyro_drift: Gyro bias random walk (rad/s/sqrt(s)).
        accel_stddev: Accelerometer white noise (m/s²).
        accel_drift: Accelerometer bias random walk (m/s²/sqrt(s)).
        rate_state: Estimate the body rate as a state (driven by a rate
            measurement) instead of integrating the gyro directly.
        estimate_biases: Estimate gyro and accelerometer biases.
        max_condition_number: Innovation covariances above this condition
            number are treated as singular.
        reference_latitude, reference_longitude: Optional preset anchor
            (rad). Both or neither.
        reference_altitude: Optional preset altitude of z = 0 (m).
        reference_heading: Optional preset heading of the local x axis
            (rad, clockwise from north).
        measurements: Measurement name -> keyword arguments (plus "type").

    Example:
        >>> config = EstimatorConfig(gyro_stddev=0.02)
        >>> config.build_system_model().rate_stddev
        0.02
    """

    gravity: Optional[float] = None
    angular_acceleration_stddev: float = float(np.deg2rad(360.0))
    velocity_stddev: float = 0.0
    gyro_stddev: float = 0.01
    gyro_drift: float = 1e-4
    accel_stddev: float = 0.1
    accel_drift: float = 1e-3
    rate_state: bool = False
    estimate_biases: bool = True
    max_condition_number: float = 1e12
    reference_latitude: Optional[float] = None
    reference_longitude: Optional[float] = None
    reference_altitude: Optional[float] = None
    reference_heading: Optional[float] = None
    measurements: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate parameter ranges and measurement descriptions."""
        if self.gravity is not None and self.gravity <= 0:
            raise ValueError(f"gravity must be positive, got {self.gravity}")

        for name in (
            "angular_acceleration_stddev",
            "velocity_stddev",
            "gyro_stddev",
            "gyro_drift",
            "accel_stddev",
            "accel_drift",
        ):
            value = getattr(self, name)
            if not np.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")

        if self.max_condition_number <= 1.0:
            raise ValueError(
                f"max_condition_number must be > 1, got {self.max_condition_number}"
            )

        if (self.reference_latitude is None) != (self.reference_longitude is None):
            raise ValueError(
                "reference_latitude and reference_longitude must be given together"
            )
        if self.reference_latitude is not None and abs(self.reference_latitude) > np.pi / 2:
            raise ValueError(
                f"reference_latitude must be in [-pi/2, pi/2] radians, "
                f"got {self.reference_latitude}. Did you pass degrees?"
            )

        for name, params in self.measurements.items():
            if not isinstance(params, dict):
                raise ValueError(
                    f"Measurement {name!r} must be described by a dict, got {type(params)}"
                )
            kind = params.get("type", name)
            if kind not in MEASUREMENT_TYPES:
                raise ValueError(
                    f"Measurement {name!r} has unknown type {kind!r}; "
                    f"known types: {sorted(MEASUREMENT_TYPES)}"
                )

    # ------------------------------------------------------------------
    # Presets and loading
    # ------------------------------------------------------------------

    @classmethod
    def default(cls) -> "EstimatorConfig":
        """IMU with gravity aiding, GPS, height and (disabled) magnetometer.

        The magnetometer stays inactive until a field magnitude is set.
        """
        return cls(
            measurements={
                "gravity": {},
                "gps": {},
                "height": {},
                "magnetic": {},
                "zero_rate": {"enabled": False},
            }
        )

    @classmethod
    def quadrotor(cls) -> "EstimatorConfig":
        """Small UAV with GPS, barometer and magnetometer."""
        return cls(
            gyro_stddev=float(np.deg2rad(1.0)),
            accel_stddev=0.05,
            measurements={
                "gravity": {"stddev": 1.0},
                "gps": {"position_stddev": 5.0, "velocity_stddev": 0.5},
                "baro": {"stddev": 50.0},
                "magnetic": {"magnitude": 1.0, "stddev": 0.1},
            },
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EstimatorConfig":
        """Build a configuration from a dict, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
        values = dict(data)
        if "measurements" in values:
            values["measurements"] = {
                name: dict(params) if isinstance(params, dict) else params
                for name, params in values["measurements"].items()
            }
        return cls(**values)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "EstimatorConfig":
        """Load a configuration written as JSON."""
        with open(path, "r") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a JSON object at top level")
        return cls.from_dict(data)

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def build_system_model(self) -> GenericQuaternionSystemModel:
        return GenericQuaternionSystemModel(
            gravity=self.gravity,
            angular_acceleration_stddev=self.angular_acceleration_stddev,
            velocity_stddev=self.velocity_stddev,
            gyro=GyroModel(stddev=self.gyro_stddev, drift=self.gyro_drift),
            accelerometer=AccelerometerModel(
                stddev=self.accel_stddev, drift=self.accel_drift
            ),
        )

    def build_measurements(self) -> List[Measurement]:
        """Instantiate the configured measurement models, in order."""
        models = []
        for name, params in self.measurements.items():
            kwargs = dict(params)
            kind = kwargs.pop("type", name)
            kwargs.setdefault("name", name)
            models.append(MEASUREMENT_TYPES[kind](**kwargs))
        return models

    def active_blocks(self) -> Tuple[StateBlock, ...]:
        blocks = [StateBlock.ORIENTATION, StateBlock.POSITION, StateBlock.VELOCITY]
        if self.rate_state:
            blocks.append(StateBlock.RATE)
        if self.estimate_biases:
            blocks += [StateBlock.GYRO_BIAS, StateBlock.ACCEL_BIAS]
        return tuple(blocks)

    def apply_reference(self, reference: GlobalReference) -> None:
        """Write the preset anchor (if any) into ``reference``."""
        if self.reference_altitude is not None:
            reference.set_altitude(self.reference_altitude)
        if self.reference_latitude is not None:
            reference.set_position(self.reference_latitude, self.reference_longitude)
        if self.reference_heading is not None:
            reference.set_heading(self.reference_heading)
