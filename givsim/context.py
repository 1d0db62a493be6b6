import math
import multiprocessing as mp
from dataclasses import dataclass, asdict

import numpy as np

from .errors import ConfigurationError

"""
Run configuration and the context object threaded through the pipeline.
The context owns the random number lineage and the worker pool handle so
no component depends on global state.
"""

ON_ERROR_POLICIES = ("stop", "skip")

@dataclass(frozen=True)
class MarkerWeights:
    """Scaling factors applied to marker and error terms of T and y"""
    m_weight_T: float
    e_weight_T: float
    m_weight_y: float
    e_weight_y: float

@dataclass(frozen=True)
class SimulationConfig:
    """
    Parameters of one simulated configuration

    Parameters
    ----------
    delta : float
        causal effect of T on y
    rho : float
        correlation between a marker's effect on y and on T (pleiotropy)
    h2y : float
        heritability of y
    h2T : float
        heritability of T
    n_pop : int
        discovery (GWAS) population size
    n_replic : int
        replication sample size
    n_markers : int
        number of markers
    reps : int
        number of repetitions
    rho_e : float
        correlation between the error terms of y and T
    seed : int
        master random seed
    name : str
        study name used in the output file
    on_error : str
        "stop" to abort the run on a failed repetition, "skip" to continue
    n_workers : int, optional
        size of the marker worker pool, defaults to cpu count - 1
    """
    delta: float
    rho: float
    h2y: float = 0.8
    h2T: float = 0.2
    n_pop: int = 100000
    n_replic: int = 10000
    n_markers: int = 10000
    reps: int = 20
    rho_e: float = 0.0
    seed: int = 1
    name: str = "pleiotropy"
    on_error: str = "stop"
    n_workers: int = None

    @property
    def spl(self):
        """index where the discovery population is split in two halves"""
        return self.n_pop//2

    @property
    def workers(self):
        if self.n_workers is not None:
            return self.n_workers
        return max(1, mp.cpu_count()-1)

    def validate(self):
        """
        Check the configuration can be simulated

        Returns
        -------
        SimulationConfig
            self, so the call can be chained

        Raises
        ------
        ConfigurationError
        """
        for field in ["n_pop","n_replic","n_markers","reps","seed"]:
            value = getattr(self, field)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise ConfigurationError(f"{field} must be an integer, got {value!r}")
        for field in ["n_pop","n_replic","n_markers","reps"]:
            if getattr(self, field) < 1:
                raise ConfigurationError(f"{field} must be positive, got {getattr(self, field)}")
        if self.seed < 0:
            raise ConfigurationError(f"seed must be non-negative, got {self.seed}")
        # both halves need at least three individuals for a conditional marker regression
        if self.n_pop < 6:
            raise ConfigurationError(f"n_pop must be at least 6, got {self.n_pop}")
        # the largest estimator has three coefficients
        if self.n_replic <= 3:
            raise ConfigurationError(f"n_replic must exceed 3, got {self.n_replic}")
        for field in ["delta","rho","h2y","h2T","rho_e"]:
            value = getattr(self, field)
            if not isinstance(value, (int, float, np.number)) or not math.isfinite(value):
                raise ConfigurationError(f"{field} must be a finite number, got {value!r}")
        for field in ["h2y","h2T"]:
            value = getattr(self, field)
            if not 0 <= value < 1:
                raise ConfigurationError(f"{field} must be in [0, 1), got {value}")
        for field in ["rho","rho_e"]:
            if abs(getattr(self, field)) > 1:
                raise ConfigurationError(f"{field} must be a correlation in [-1, 1], got {getattr(self, field)}")
        if self.on_error not in ON_ERROR_POLICIES:
            raise ConfigurationError(f"on_error must be one of {ON_ERROR_POLICIES}, got {self.on_error!r}")
        if self.n_workers is not None and self.n_workers < 1:
            raise ConfigurationError(f"n_workers must be positive, got {self.n_workers}")
        self.weights()
        return self

    def weights(self):
        """
        Marker and error weights giving T and y their target heritabilities.
        The y marker weight ignores the covariance between the two effect
        columns so effect sizes stay comparable across rho.

        Returns
        -------
        MarkerWeights

        Raises
        ------
        ConfigurationError
            if the heritabilities and delta cannot be reached
        """
        if not (0 <= self.h2T < 1 and 0 <= self.h2y < 1):
            raise ConfigurationError(f"heritabilities must be in [0, 1), got h2y={self.h2y}, h2T={self.h2T}")
        m_weight_T = math.sqrt(self.h2T)/math.sqrt(0.5*self.n_markers)
        e_weight_T = math.sqrt(1-self.h2T)
        e_weight_y = math.sqrt(0.5)
        radicand = (self.h2y*(self.delta**2 + e_weight_y**2)-self.h2T)/(1-self.h2y)
        if radicand < 0:
            raise ConfigurationError(f"infeasible combination h2y={self.h2y}, h2T={self.h2T}, "
                                     f"delta={self.delta}: y marker weight radicand is {radicand:.4g}")
        m_weight_y = math.sqrt(radicand)/math.sqrt(0.5*self.n_markers)
        return MarkerWeights(m_weight_T, e_weight_T, m_weight_y, e_weight_y)

    def output_name(self):
        """deterministic artifact file name for this configuration"""
        return (f"{self.name}_h2y_{self.h2y:.1f}_h2T_{self.h2T:.1f}"
                f"_rho_{self.rho:g}_delta_{self.delta:g}.hdf5")

    def to_dict(self):
        return asdict(self)

class SerialPool:
    """
    In-process stand-in for multiprocessing.Pool offering the same
    ordered ``imap``
    """
    def imap(self, func, iterable, chunksize=1):
        return map(func, iterable)

class SimulationContext:
    """
    Everything a repetition needs: validated configuration, the random
    number lineage and the pool used to map over markers

    Parameters
    ----------
    config : SimulationConfig
    pool : object, optional
        anything with an ordered ``imap(func, iterable, chunksize)``,
        e.g. multiprocessing.Pool; defaults to SerialPool
    progress : bool, optional
        show a tqdm progress bar over markers
    """
    def __init__(self, config, pool=None, progress=False):
        self.config = config.validate()
        self.weights = config.weights()
        self.pool = pool if pool is not None else SerialPool()
        self.progress = progress
        self._seeds = np.random.SeedSequence(config.seed).spawn(config.reps)

    def repetition_rng(self, i_rep):
        """fresh generator for repetition i_rep, independent of the others"""
        return np.random.default_rng(self._seeds[i_rep])
