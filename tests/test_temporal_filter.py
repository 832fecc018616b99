import numpy as np
import pytest

from posecap.core.temporal_filter import (
    LowPassFilter,
    OneEuroFilter1D,
    OneEuroFilter3D,
    smoothing_factor,
)


def test_first_sample_passes_through():
    f = OneEuroFilter1D()
    assert f.filter(3.25, 0.0) == 3.25
    assert f.initialized


def test_second_sample_matches_one_euro_formula():
    f = OneEuroFilter1D(freq=30.0, min_cutoff=1.0, beta=0.007, d_cutoff=1.0)
    f.filter(0.0, 0.0)
    out = f.filter(1.0, 100.0)

    # freq becomes 10 Hz; derivative (1 - 0) * 10 smoothed from an initial 0
    a_d = smoothing_factor(1.0, 10.0)
    cutoff = 1.0 + 0.007 * abs(10.0 * a_d)
    expected = smoothing_factor(cutoff, 10.0) * 1.0
    assert out == pytest.approx(expected)


def test_frequency_follows_timestamps():
    f = OneEuroFilter1D(freq=30.0)
    f.filter(0.0, 0.0)
    f.filter(0.0, 10.0)
    assert f.freq == pytest.approx(100.0)


def test_tiny_timestamp_delta_keeps_frequency():
    f = OneEuroFilter1D(freq=30.0)
    f.filter(0.0, 0.0)
    f.filter(1.0, 0.05)
    assert f.freq == pytest.approx(30.0)


def test_constant_input_converges():
    f = OneEuroFilter1D()
    out = None
    for i in range(200):
        out = f.filter(0.42, i * 33.0)
    assert out == pytest.approx(0.42, abs=1e-6)


def test_step_is_smoothed():
    f = OneEuroFilter1D()
    f.filter(0.0, 0.0)
    out = f.filter(1.0, 33.0)
    assert 0.0 < out < 1.0


def test_reset_forgets_history():
    f = OneEuroFilter1D()
    f.filter(0.0, 0.0)
    f.filter(1.0, 33.0)
    f.reset()
    assert not f.initialized
    assert f.filter(5.0, 66.0) == 5.0


def test_set_params_updates_in_place():
    f = OneEuroFilter1D()
    f.filter(0.0, 0.0)
    f.set_params(min_cutoff=2.0, beta=0.5)
    assert f.min_cutoff == 2.0
    assert f.beta == 0.5
    assert f.d_cutoff == 1.0
    assert f.initialized


def test_filter_batch_starts_clean():
    f = OneEuroFilter1D()
    f.filter(100.0, 0.0)
    out = f.filter_batch([1.0, 1.0, 1.0], [0.0, 33.0, 66.0])
    assert isinstance(out, np.ndarray)
    assert out[0] == 1.0
    assert out == pytest.approx([1.0, 1.0, 1.0])


def test_low_pass_remembers_raw_value():
    lp = LowPassFilter()
    lp.filter(1.0, 0.5)
    out = lp.filter(3.0, 0.5)
    assert out == pytest.approx(2.0)
    assert lp.last_raw == 3.0
    assert lp.last_smoothed == pytest.approx(2.0)


def test_3d_axes_are_independent():
    f3 = OneEuroFilter3D()
    fx = OneEuroFilter1D()
    samples = [(0.0, 5.0, -1.0), (1.0, 5.0, -1.0), (0.5, 5.0, -1.0)]
    for i, (x, y, z) in enumerate(samples):
        ox, oy, oz = f3.filter(x, y, z, i * 33.0)
        assert ox == pytest.approx(fx.filter(x, i * 33.0))
        assert oy == pytest.approx(5.0)
        assert oz == pytest.approx(-1.0)


def test_3d_set_params_and_reset():
    f3 = OneEuroFilter3D()
    f3.filter(1.0, 2.0, 3.0, 0.0)
    f3.set_params(beta=1.0)
    assert f3.fx.beta == f3.fy.beta == f3.fz.beta == 1.0
    f3.reset()
    assert f3.filter(7.0, 8.0, 9.0, 10.0) == (7.0, 8.0, 9.0)
