import pytest

from givsim.context import SimulationConfig


@pytest.fixture
def small_config():
    """End-to-end scenario small enough to run serially in a test"""
    def make(**kwargs):
        params = dict(delta=0.3, rho=0.5, h2y=0.8, h2T=0.2, n_pop=2000, n_replic=1000,
                      n_markers=200, reps=2, seed=1, n_workers=1)
        params.update(kwargs)
        return SimulationConfig(**params)
    return make
