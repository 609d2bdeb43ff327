import math

import numpy as np
import pytest

from puck_sim.baskets import ALL_BASKETS, DEFAULT_BASKET, basket_by_id
from puck_sim.grid import Field, PuckGrid, grid_shape_for, make_grid


def make_test_grid(rows: int = 5, cols: int = 4) -> PuckGrid:
    return PuckGrid(rows=rows, cols=cols, radius_m=0.029, height_m=0.01)


def test_field_is_flat_and_read_only():
    a = np.arange(12, dtype=float).reshape(3, 4)
    f = Field.from_array(a)
    assert f.data.shape == (12,)
    assert f.at(2, 1) == 9.0
    assert np.array_equal(f.row(1), [4.0, 5.0, 6.0, 7.0])
    with pytest.raises(ValueError):
        f.data[0] = 1.0

    # the source array is not aliased
    a[0, 0] = 100.0
    assert f.at(0, 0) == 0.0


def test_field_bounds_checked():
    f = Field.zeros(3, 4)
    with pytest.raises(IndexError):
        f.at(3, 0)
    with pytest.raises(IndexError):
        f.at(0, -1)
    with pytest.raises(IndexError):
        f.row(5)
    with pytest.raises(ValueError):
        Field(data=np.zeros(5), rows=2, cols=2)


def test_field_normalized():
    f = Field.from_array(np.array([[1.0, 2.0], [4.0, 0.0]]))
    n = f.normalized()
    assert n.max() == 1.0
    assert n.at(0, 1) == pytest.approx(0.5)
    assert Field.zeros(2, 2).normalized().max() == 0.0


def test_grid_geometry():
    g = make_test_grid()
    assert g.dr == pytest.approx(0.029 / 4)
    assert g.dz == pytest.approx(0.01 / 4)
    assert g.annular_areas.sum() == pytest.approx(math.pi * 0.029 ** 2)
    assert g.face_radii[-1] == pytest.approx(0.029)
    assert g.radial_fraction(0) == 0.0 and g.radial_fraction(3) == 1.0
    assert g.depth_fraction(4) == 1.0
    assert np.array_equal(g.radial_fraction(np.arange(4)), [0.0, 1.0 / 3.0, 2.0 / 3.0, 1.0])
    assert g.depth_fraction(np.arange(5))[-1] == 1.0


def test_neighbors_and_index():
    g = make_test_grid()
    assert sorted(g.neighbors4(0, 0)) == [(0, 1), (1, 0)]
    assert len(g.neighbors4(2, 2)) == 4
    assert g.index(1, 2) == 6
    with pytest.raises(IndexError):
        g.index(5, 0)


def test_grid_rejects_degenerate_shape():
    with pytest.raises(ValueError):
        PuckGrid(rows=2, cols=4, radius_m=0.029, height_m=0.01)
    with pytest.raises(ValueError):
        PuckGrid(rows=5, cols=4, radius_m=0.029, height_m=0.0)


def test_resolution_scales_with_basket():
    for b in ALL_BASKETS:
        rows, cols = grid_shape_for(b)
        assert rows >= 20 and cols >= 20
    assert grid_shape_for(DEFAULT_BASKET) == (32, 20)
    assert grid_shape_for(basket_by_id("decent_22g"))[0] > grid_shape_for(basket_by_id("decent_7g"))[0]

    g = make_grid(DEFAULT_BASKET, puck_height_mm=9.5, rows=24, cols=22)
    assert g.shape == (24, 22)
    assert g.height_m == pytest.approx(0.0095)
