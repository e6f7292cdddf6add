"""Process models: strapdown quaternion kinematics and IMU bias models."""

from pose_estimation.models.bias_models import AccelerometerModel, BiasModel, GyroModel
from pose_estimation.models.system_model import GenericQuaternionSystemModel, SystemModel

__all__ = [
    "SystemModel",
    "GenericQuaternionSystemModel",
    "BiasModel",
    "GyroModel",
    "AccelerometerModel",
]
