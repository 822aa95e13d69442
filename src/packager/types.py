"""
Host value types understood by the geometry, color and layout codecs.

Timestamps use :class:`datetime.datetime` and enumerations use
:class:`enum.Enum` members directly, so only the types without a standard
library counterpart are defined here.
"""

import math
from typing import NamedTuple, Tuple

import numpy as np


class Vector3(NamedTuple):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class Vector2(NamedTuple):
    x: float = 0.0
    y: float = 0.0


class Color3(NamedTuple):
    """RGB color with channels normalized to [0, 1]."""

    r: float = 0.0
    g: float = 0.0
    b: float = 0.0


class UDim(NamedTuple):
    scale: float = 0.0
    offset: float = 0.0


class UDim2(NamedTuple):
    """Two-axis layout offset, each axis a relative scale plus an absolute offset."""

    x: UDim = UDim()
    y: UDim = UDim()

    @classmethod
    def from_values(
        cls, x_scale: float, x_offset: float, y_scale: float, y_offset: float
    ) -> "UDim2":
        return cls(UDim(x_scale, x_offset), UDim(y_scale, y_offset))


def _rx(a: float) -> np.ndarray:
    c, s = math.cos(a), math.sin(a)
    return np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]])


def _ry(a: float) -> np.ndarray:
    c, s = math.cos(a), math.sin(a)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])


def _rz(a: float) -> np.ndarray:
    c, s = math.cos(a), math.sin(a)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


class Transform:
    """Rigid transform: a position plus a 3x3 rotation matrix.

    Orientation angles follow the Y-X-Z convention: the rotation is
    ``Ry(ry) @ Rx(rx) @ Rz(rz)``.
    """

    __slots__ = ("position", "rotation")

    def __init__(self, position=Vector3(), rotation=None):
        self.position = Vector3(*(float(c) for c in position))
        if rotation is None:
            rotation = np.eye(3)
        rotation = np.asarray(rotation, dtype=np.float64)
        if rotation.shape != (3, 3):
            raise ValueError(f"rotation must be 3x3, got shape {rotation.shape}")
        self.rotation = rotation

    @classmethod
    def from_orientation(cls, position, rx: float, ry: float, rz: float) -> "Transform":
        return cls(position, _ry(ry) @ _rx(rx) @ _rz(rz))

    def to_orientation(self) -> Tuple[float, float, float]:
        """Decompose the rotation into (rx, ry, rz) angles in radians."""
        m = self.rotation
        sx = -m[1, 2]
        rx = math.asin(min(1.0, max(-1.0, sx)))
        if abs(sx) < 1.0 - 1e-9:
            ry = math.atan2(m[0, 2], m[2, 2])
            rz = math.atan2(m[1, 0], m[1, 1])
        else:
            # Gimbal lock: ry and rz share an axis, fold everything into ry.
            ry = math.atan2(-m[2, 0], m[0, 0])
            rz = 0.0
        return rx, ry, rz

    def isclose(self, other: "Transform", atol: float = 1e-6) -> bool:
        return bool(
            np.allclose(self.position, other.position, atol=atol)
            and np.allclose(self.rotation, other.rotation, atol=atol)
        )

    def __eq__(self, other):
        if not isinstance(other, Transform):
            return NotImplemented
        return self.position == other.position and bool(
            np.array_equal(self.rotation, other.rotation)
        )

    __hash__ = None

    def __repr__(self) -> str:
        rx, ry, rz = self.to_orientation()
        return f"Transform(position={tuple(self.position)}, orientation=({rx:.4f}, {ry:.4f}, {rz:.4f}))"
