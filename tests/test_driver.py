import os

import numpy as np
import pytest

from givsim import driver
from givsim.context import SimulationContext
from givsim.errors import NumericalSingularityError, ResourceExhaustionError
from givsim.estimators import ESTIMATORS
from givsim.results import load_results


def test_small_scenario_end_to_end(small_config, tmp_path):
    config = small_config()
    output = str(tmp_path/config.output_name())
    results = driver.run_simulation(SimulationContext(config), output)

    assert results.completed.all()
    for spec in ESTIMATORS:
        k = len(spec.regressors)
        coef, cov = results.coef[spec.name], results.cov[spec.name]
        assert coef.shape == (2, k) and k in (2, 3)
        assert cov.shape == (k, k, 2)
        assert np.isfinite(coef).all()
        for i_rep in range(2):
            c = cov[:, :, i_rep]
            np.testing.assert_allclose(c, c.T, rtol=1e-10, atol=1e-15)
            assert np.linalg.eigvalsh(c).min() >= -1e-12
    assert os.path.exists(output)
    assert load_results(output).completed.all()


def test_same_seed_reproduces_results(small_config):
    config = small_config()
    first = driver.run_simulation(SimulationContext(config))
    second = driver.run_simulation(SimulationContext(config))
    for spec in ESTIMATORS:
        np.testing.assert_allclose(first.coef[spec.name], second.coef[spec.name], rtol=1e-10)
        np.testing.assert_allclose(first.cov[spec.name], second.cov[spec.name], rtol=1e-10)
    other = driver.run_simulation(SimulationContext(small_config(seed=2)))
    assert not np.allclose(other.coef["OLS_T"], first.coef["OLS_T"])


def test_ols_recovers_delta_without_pleiotropy(small_config):
    config = small_config(rho=0.0, reps=4)
    results = driver.run_simulation(SimulationContext(config))
    # coefficient on T is the last one
    assert results.coef["OLS_T"][:, 1].mean() == pytest.approx(0.3, abs=0.15)


def test_rerun_overwrites_identical_artifact(small_config, tmp_path):
    config = small_config(reps=1)
    _, first = driver.simulate(config, str(tmp_path))
    before = load_results(first)
    _, second = driver.simulate(config, str(tmp_path))
    after = load_results(second)
    assert first == second
    assert os.listdir(tmp_path) == [config.output_name()]
    assert after.config == before.config
    for spec in ESTIMATORS:
        np.testing.assert_array_equal(after.coef[spec.name], before.coef[spec.name])
        np.testing.assert_array_equal(after.cov[spec.name], before.cov[spec.name])


def _failing_first_repetition(monkeypatch, exc):
    original = driver.run_repetition

    def run_repetition(ctx, i_rep):
        if i_rep == 0:
            raise exc
        return original(ctx, i_rep)
    monkeypatch.setattr(driver, "run_repetition", run_repetition)


def test_skip_policy_continues_after_failed_repetition(small_config, tmp_path, monkeypatch):
    _failing_first_repetition(monkeypatch, NumericalSingularityError("estimator MR: X'X is singular"))
    config = small_config(on_error="skip")
    output = str(tmp_path/"skip.hdf5")
    results = driver.run_simulation(SimulationContext(config), output)
    assert results.completed.tolist() == [False, True]
    assert np.isnan(results.coef["GIV_U"][0]).all()
    assert np.isfinite(results.coef["GIV_U"][1]).all()
    assert load_results(output).completed.tolist() == [False, True]


def test_stop_policy_raises_with_repetition(small_config, tmp_path, monkeypatch):
    _failing_first_repetition(monkeypatch, NumericalSingularityError("estimator MR: X'X is singular"))
    output = str(tmp_path/"stop.hdf5")
    with pytest.raises(NumericalSingularityError, match="repetition 1: estimator MR"):
        driver.run_simulation(SimulationContext(small_config()), output)
    assert not os.path.exists(output)


def test_allocation_failure_becomes_resource_error(small_config, monkeypatch):
    def simulate_population(*args, **kwargs):
        raise MemoryError("cannot allocate")
    monkeypatch.setattr(driver, "simulate_population", simulate_population)
    with pytest.raises(ResourceExhaustionError, match="repetition 1: generating discovery population"):
        driver.run_simulation(SimulationContext(small_config()))


def test_repetition_stages_run_in_order(small_config, monkeypatch):
    events = []
    original_population = driver.simulate_population
    original_gwas = driver.run_gwas

    def simulate_population(rng, n, zeta, config, weights):
        events.append(("population", n))
        return original_population(rng, n, zeta, config, weights)

    def run_gwas(ctx, markers, y, T):
        events.append(("gwas", markers.shape))
        return original_gwas(ctx, markers, y, T)
    monkeypatch.setattr(driver, "simulate_population", simulate_population)
    monkeypatch.setattr(driver, "run_gwas", run_gwas)
    fits = driver.run_repetition(SimulationContext(small_config(reps=1)), 0)
    assert events == [("population", 2000), ("gwas", (2000, 200)), ("population", 1000)]
    assert set(fits) == {spec.name for spec in ESTIMATORS}


@pytest.mark.parametrize("stage,message", [("run_gwas", "estimating marker effects"),
                                           ("fit_all", "fitting estimators")])
def test_out_of_memory_in_later_stages_follows_skip_policy(small_config, monkeypatch, stage, message):
    original = getattr(driver, stage)
    calls = []

    def failing(*args, **kwargs):
        calls.append(stage)
        if len(calls) == 1:
            raise MemoryError("worker result transfer")
        return original(*args, **kwargs)
    monkeypatch.setattr(driver, stage, failing)
    results = driver.run_simulation(SimulationContext(small_config(on_error="skip")))
    assert results.completed.tolist() == [False, True]

    calls.clear()
    with pytest.raises(ResourceExhaustionError, match=f"repetition 1: {message}"):
        driver.run_simulation(SimulationContext(small_config()))
