import os

import h5py
import numpy as np

from .context import SimulationConfig
from .estimators import ESTIMATORS, EstimatorSpec

"""
Result collections for all estimators and their HDF5 representation.

Layout (schema version 1)
    attrs                      schema_version and every SimulationConfig field
    completed                  (reps,) bool
    estimators/<NAME>/coef     (reps, k)
    estimators/<NAME>/cov      (k, k, reps)
    estimators/<NAME> attrs    regressors, instruments, method
"""

SCHEMA_VERSION = 1

class SimulationResults:
    """
    Pre-sized estimates and covariances for every estimator, indexed by
    repetition. Slots of repetitions that did not complete stay NaN.

    Parameters
    ----------
    config : SimulationConfig
    estimators : tuple, optional
        EstimatorSpec records
    """
    def __init__(self, config, estimators=ESTIMATORS):
        self.config = config
        self.estimators = tuple(estimators)
        self.completed = np.zeros(config.reps, dtype=bool)
        self.coef, self.cov = {}, {}
        for spec in self.estimators:
            k = len(spec.regressors)
            self.coef[spec.name] = np.full((config.reps, k), np.nan)
            self.cov[spec.name] = np.full((k, k, config.reps), np.nan)

    def record(self, i_rep, fits):
        """
        Store the fits of one repetition in place

        Parameters
        ----------
        i_rep : int
            repetition index
        fits : dict
            estimator name -> (coefficients, covariance)
        """
        missing = [spec.name for spec in self.estimators if spec.name not in fits]
        if missing:
            raise KeyError(f"repetition {i_rep}: no fit for {', '.join(missing)}")
        for spec in self.estimators:
            est, cov = fits[spec.name]
            self.coef[spec.name][i_rep] = est
            self.cov[spec.name][:,:,i_rep] = cov
        self.completed[i_rep] = True

    def save(self, path):
        """
        Write all results to path, replacing any previous file atomically
        """
        tmp = f"{path}.tmp"
        with h5py.File(tmp, "w") as f:
            f.attrs["schema_version"] = SCHEMA_VERSION
            for key, value in self.config.to_dict().items():
                if value is not None:
                    f.attrs[key] = value
            f.create_dataset("completed", data=self.completed)
            group = f.create_group("estimators")
            for spec in self.estimators:
                est = group.create_group(spec.name)
                est.attrs["regressors"] = ",".join(spec.regressors)
                est.attrs["instruments"] = ",".join(spec.instruments or ())
                est.attrs["method"] = spec.method
                est.create_dataset("coef", data=self.coef[spec.name])
                est.create_dataset("cov", data=self.cov[spec.name])
        os.replace(tmp, path)
        return path

def _attr(value):
    # h5py hands back numpy scalars
    return value.item() if isinstance(value, np.generic) else value

def load_results(path):
    """
    Read results written by SimulationResults.save

    Parameters
    ----------
    path : str
        HDF5 file

    Returns
    -------
    SimulationResults
    """
    with h5py.File(path, "r") as f:
        version = _attr(f.attrs.get("schema_version"))
        if version != SCHEMA_VERSION:
            raise ValueError(f"{path}: unsupported schema version {version}")
        fields = set(SimulationConfig.__dataclass_fields__)
        config = SimulationConfig(**{key: _attr(value) for key, value in f.attrs.items()
                                     if key in fields})
        estimators = []
        for name in f["estimators"]:
            group = f["estimators"][name]
            regressors = tuple(group.attrs["regressors"].split(","))
            instruments = group.attrs["instruments"]
            estimators.append(EstimatorSpec(name, regressors,
                                            tuple(instruments.split(",")) if instruments else None))
        # keep the canonical estimator order where it applies
        order = [spec.name for spec in ESTIMATORS]
        estimators.sort(key=lambda spec: order.index(spec.name) if spec.name in order else len(order))
        results = SimulationResults(config, estimators)
        results.completed[:] = f["completed"][()]
        for spec in estimators:
            results.coef[spec.name][:] = f["estimators"][spec.name]["coef"][()]
            results.cov[spec.name][:] = f["estimators"][spec.name]["cov"][()]
    return results
