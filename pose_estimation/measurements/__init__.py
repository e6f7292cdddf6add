"""
Measurement models.

Every model derives from ``Measurement`` and is registered with a
``PoseEstimation`` under a unique name:

    - GPS: position and horizontal velocity, anchors the global reference
    - Height, Baro: vertical position with an elevation offset
    - Magnetic: body-frame Earth field, observes yaw
    - Rate: gyro observation of the rate state
    - Gravity: accelerometer observation of roll and pitch
    - ZeroRate, ZeroVelocity: stationarity pseudo-measurements
"""

from pose_estimation.measurements.base import Measurement, MeasurementError
from pose_estimation.measurements.gps import GPS
from pose_estimation.measurements.gravity import Gravity
from pose_estimation.measurements.height import Baro, Height
from pose_estimation.measurements.magnetic import Magnetic
from pose_estimation.measurements.rate import Rate
from pose_estimation.measurements.zero_rate import ZeroRate, ZeroVelocity

__all__ = [
    "Measurement",
    "MeasurementError",
    "GPS",
    "Gravity",
    "Height",
    "Baro",
    "Magnetic",
    "Rate",
    "ZeroRate",
    "ZeroVelocity",
]
