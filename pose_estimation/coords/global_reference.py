"""Geodetic anchor for the filter's local Cartesian frame.

The local frame is a tangent plane at a reference latitude/longitude. Its
x axis points along the reference heading, a compass heading measured
clockwise from north. The y axis lies 90° counter-clockwise from x (west
for heading = 0) and z is up.

Conversions use an equirectangular projection scaled by the WGS84 radii
of curvature at the anchor, which is accurate to a few centimetres over
the kilometre-scale areas a single anchor covers.

Example:
    >>> ref = GlobalReference()
    >>> ref.set_position(np.deg2rad(49.86), np.deg2rad(8.68))
    >>> ref.from_wgs84(np.deg2rad(49.86), np.deg2rad(8.68))
    (0.0, 0.0)
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from pose_estimation.coords.transforms import local_radii, wrap_angle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeodeticPosition:
    """Latitude/longitude in radians, altitude in meters (NaN if unknown)."""

    latitude: float
    longitude: float
    altitude: float = float("nan")


class GlobalReference:
    """Mutable anchor relating local (x, y, z) to latitude/longitude/altitude.

    Created once per estimator. GPS, height and magnetic models update it
    from their ``before_update`` hooks; every other component only reads it.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        """Forget position, altitude and heading."""
        self._latitude: Optional[float] = None
        self._longitude: Optional[float] = None
        self._altitude: Optional[float] = None
        self._heading: Optional[float] = None
        self._radius_north = 0.0
        self._radius_east = 0.0

    # ------------------------------------------------------------------
    # Anchor
    # ------------------------------------------------------------------

    @property
    def has_position(self) -> bool:
        return self._latitude is not None

    @property
    def has_altitude(self) -> bool:
        return self._altitude is not None

    @property
    def has_heading(self) -> bool:
        return self._heading is not None

    @property
    def latitude(self) -> float:
        self._require_position()
        return self._latitude

    @property
    def longitude(self) -> float:
        self._require_position()
        return self._longitude

    @property
    def altitude(self) -> float:
        """Reference altitude in meters (0.0 until one is set)."""
        return self._altitude if self._altitude is not None else 0.0

    @property
    def heading(self) -> float:
        """Compass heading of the local x axis, clockwise from north (rad)."""
        return self._heading if self._heading is not None else 0.0

    @property
    def position(self) -> GeodeticPosition:
        self._require_position()
        altitude = self._altitude if self._altitude is not None else float("nan")
        return GeodeticPosition(self._latitude, self._longitude, altitude)

    def set_position(self, latitude: float, longitude: float) -> None:
        """Set (or overwrite) the anchor latitude/longitude in radians."""
        if not (np.isfinite(latitude) and np.isfinite(longitude)):
            raise ValueError(
                f"Reference position must be finite, got ({latitude}, {longitude})"
            )
        if abs(latitude) > np.pi / 2:
            raise ValueError(f"Latitude {latitude} rad is outside [-pi/2, pi/2]")
        self._latitude = float(latitude)
        self._longitude = wrap_angle(longitude)
        self._update_radii()

    def set_altitude(self, altitude: float) -> None:
        """Set the altitude of the local z = 0 plane in meters."""
        if not np.isfinite(altitude):
            raise ValueError(f"Reference altitude must be finite, got {altitude}")
        self._altitude = float(altitude)
        if self.has_position:
            self._update_radii()

    def set_heading(self, heading: float) -> None:
        """Set the compass heading of the local x axis (rad, clockwise from north)."""
        if not np.isfinite(heading):
            raise ValueError(f"Reference heading must be finite, got {heading}")
        self._heading = wrap_angle(heading)

    def reanchor(self, latitude: float, longitude: float, x: float, y: float) -> None:
        """Choose the anchor so that local (x, y) lies at (latitude, longitude).

        The fix is first used as a temporary anchor. The point at local
        (-x, -y) relative to it is then the origin that places the current
        local position exactly on the fix, so local coordinates estimated
        before the call keep their geodetic meaning.
        """
        self.set_position(latitude, longitude)
        origin_latitude, origin_longitude = self.to_wgs84(-x, -y)
        self.set_position(origin_latitude, origin_longitude)
        logger.info(
            "Global reference anchored at lat=%.8f deg, lon=%.8f deg "
            "(local position %.2f, %.2f)",
            np.rad2deg(origin_latitude),
            np.rad2deg(origin_longitude),
            x,
            y,
        )

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    def from_wgs84(self, latitude: float, longitude: float) -> Tuple[float, float]:
        """Convert latitude/longitude (rad) to local (x, y) in meters."""
        self._require_position()
        north = (latitude - self._latitude) * self._radius_north
        east = wrap_angle(longitude - self._longitude) * self._radius_east
        return self.from_north_east(north, east)

    def to_wgs84(self, x: float, y: float) -> Tuple[float, float]:
        """Convert local (x, y) in meters to latitude/longitude (rad)."""
        self._require_position()
        north, east = self.to_north_east(x, y)
        latitude = self._latitude + north / self._radius_north
        longitude = wrap_angle(self._longitude + east / self._radius_east)
        return float(latitude), longitude

    def from_north_east(self, north: float, east: float) -> Tuple[float, float]:
        """Rotate a north/east pair into local (x, y)."""
        c, s = np.cos(self.heading), np.sin(self.heading)
        return float(north * c + east * s), float(north * s - east * c)

    def to_north_east(self, x: float, y: float) -> Tuple[float, float]:
        """Rotate local (x, y) into north/east.

        The heading rotation combined with the west/east flip is an
        involution, so the inverse uses the same matrix.
        """
        c, s = np.cos(self.heading), np.sin(self.heading)
        return float(x * c + y * s), float(x * s - y * c)

    def to_altitude(self, z: float) -> float:
        """Convert local z to altitude (NaN when no altitude reference)."""
        if not self.has_altitude:
            return float("nan")
        return self._altitude + z

    def _update_radii(self) -> None:
        self._radius_north, self._radius_east = local_radii(
            self._latitude, self.altitude
        )

    def _require_position(self) -> None:
        if not self.has_position:
            raise RuntimeError("Global reference position has not been set")
