import multiprocessing as mp

import numpy as np
import pytest

from givsim.context import SimulationConfig, SimulationContext
from givsim.errors import NumericalSingularityError
from givsim.gwas import RESULT_COLUMNS, marker_regressions, run_gwas


def _noiseless_marker(n=200, spl=100, a=0.7, b=-0.4, delta=0.5, seed=0):
    """
    One marker with T = a*marker + u and y = b*marker + delta*T, where u is
    exactly orthogonal to [1, marker] in both halves, so every regression
    has a known exact slope
    """
    rng = np.random.default_rng(seed)
    marker = rng.binomial(2, 0.5, size=n).astype(float)
    u = rng.normal(size=n)
    for half in (slice(0, spl), slice(spl, None)):
        X = np.column_stack((np.ones(len(marker[half])), marker[half]))
        u[half] -= X @ np.linalg.lstsq(X, u[half], rcond=None)[0]
    T = a*marker + u
    y = b*marker + delta*T
    return marker, T, y


def test_marker_regressions_recover_exact_coefficients():
    a, b, delta = 0.7, -0.4, 0.5
    marker, T, y = _noiseless_marker(a=a, b=b, delta=delta)
    row = marker_regressions((0, marker), y, T, 100)
    total = b + delta*a
    assert len(row) == len(RESULT_COLUMNS) == 7
    np.testing.assert_allclose(row, [total, total, a, b, b, total, b], rtol=1e-8, atol=1e-10)


def test_marker_regressions_without_pleiotropy_or_causal_effect():
    marker, T, y = _noiseless_marker(a=0.3, b=1.2, delta=0.0, seed=1)
    row = marker_regressions((0, marker), y, T, 100)
    np.testing.assert_allclose(row, [1.2, 1.2, 0.3, 1.2, 1.2, 1.2, 1.2], rtol=1e-8, atol=1e-10)


def test_singular_marker_is_reported_by_index():
    marker, T, y = _noiseless_marker()
    with pytest.raises(NumericalSingularityError, match="marker 7"):
        marker_regressions((7, np.zeros_like(marker)), y, T, 100)


def _discovery(n_pop=200, n_markers=12, seed=3):
    rng = np.random.default_rng(seed)
    markers = rng.binomial(2, 0.5, size=(n_pop, n_markers)).astype(np.int8)
    T = markers @ rng.normal(size=n_markers)*0.1 + rng.normal(size=n_pop)
    y = 0.3*T + markers @ rng.normal(size=n_markers)*0.1 + rng.normal(size=n_pop)
    return markers, y, T


def _context(n_workers=1, pool=None, n_markers=12):
    config = SimulationConfig(delta=0.3, rho=0.0, n_pop=200, n_replic=100,
                              n_markers=n_markers, reps=1, n_workers=n_workers)
    return SimulationContext(config, pool=pool)


def test_run_gwas_rows_follow_marker_order():
    markers, y, T = _discovery()
    res = run_gwas(_context(), markers, y, T)
    assert res.shape == (12, 7)
    for j in [0, 5, 11]:
        np.testing.assert_array_equal(res[j], marker_regressions((j, markers[:, j]), y, T, 100))


def test_run_gwas_process_pool_matches_serial():
    markers, y, T = _discovery()
    serial = run_gwas(_context(), markers, y, T)
    with mp.Pool(2) as pool:
        parallel = run_gwas(_context(n_workers=2, pool=pool), markers, y, T)
    np.testing.assert_allclose(parallel, serial, rtol=1e-12)


def test_run_gwas_fails_instead_of_dropping_a_marker():
    markers, y, T = _discovery()
    markers[:, 4] = 0
    with pytest.raises(NumericalSingularityError, match="marker 4"):
        run_gwas(_context(), markers, y, T)
