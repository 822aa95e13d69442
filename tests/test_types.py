import math

import numpy as np
import pytest

from packager import Transform, UDim, UDim2, Vector3


@pytest.mark.parametrize("angles", [
    (0.0, 0.0, 0.0),
    (0.3, -1.2, 0.7),
    (-1.0, 2.5, -3.0),
    (1.5, -0.1, 0.2),
])
def test_orientation_decomposition_inverts_composition(angles):
    t = Transform.from_orientation((0, 0, 0), *angles)
    for got, want in zip(t.to_orientation(), angles):
        assert got == pytest.approx(want, abs=1e-9)


def test_gimbal_lock_folds_into_yaw():
    t = Transform.from_orientation((0, 0, 0), math.pi / 2, 0.4, 0.3)
    rx, ry, rz = t.to_orientation()
    assert rx == pytest.approx(math.pi / 2)
    assert rz == 0.0
    assert Transform.from_orientation((0, 0, 0), rx, ry, rz).isclose(t)


def test_transform_defaults_and_equality():
    t = Transform()
    assert t.position == Vector3(0.0, 0.0, 0.0)
    assert np.array_equal(t.rotation, np.eye(3))
    assert t == Transform((0, 0, 0))
    assert t != Transform((1, 0, 0))


def test_transform_rejects_bad_rotation():
    with pytest.raises(ValueError):
        Transform((0, 0, 0), np.eye(2))


def test_udim2_from_values():
    assert UDim2.from_values(0.5, 10, 1, -4) == UDim2(UDim(0.5, 10), UDim(1, -4))
