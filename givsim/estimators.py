from collections import namedtuple

import numpy as np

from .errors import NumericalSingularityError
from .linalg import solve_ls, ols_covariance, iv_covariance

"""
The estimators compared in the replication sample. Each one is a record of
the regressor columns and, for 2SLS, the instrument columns; fitting and
covariance are shared.
"""

class EstimatorSpec(namedtuple("EstimatorSpec", ["name", "regressors", "instruments"],
                               defaults=(None,))):
    __slots__ = ()

    @property
    def method(self):
        """fit method, ols without instruments and iv with them"""
        return "ols" if self.instruments is None else "iv"

ESTIMATORS = (
    EstimatorSpec("OLS_T", ("const","T")),
    EstimatorSpec("OLS_T_Sy", ("const","full_score","T")),
    EstimatorSpec("OLS_T_Sy_cond", ("const","cond_full_score","T")),
    EstimatorSpec("MR", ("const","T"), ("const","score_T")),
    # GIV: S(y2) and T itself instrument the score and T
    EstimatorSpec("GIV_C", ("const","cond_score_y1","T"), ("const","score_y2","T")),
    EstimatorSpec("GIV_U", ("const","score_y1","T"), ("const","score_y2","T")),
    EstimatorSpec("EMR", ("const","score_y1","T"), ("const","score_y1","score_T")),
    EstimatorSpec("EMR2", ("const","cond_score_y1","T"), ("const","score_y2","score_T")),
)

def replication_columns(T_R, scores):
    """
    Named regressor/instrument columns of the replication sample

    Parameters
    ----------
    T_R : np.array
        replication exposure
    scores : dict
        output of scores.construct_all_scores

    Returns
    -------
    dict
        column name -> np.array
    """
    return {"const": np.ones(len(T_R)),
            "T": T_R,
            "score_y1": scores["scores"][:,0],
            "score_y2": scores["scores"][:,1],
            "score_T": scores["scores"][:,2],
            "cond_score_y1": scores["cond_scores"][:,0],
            "cond_score_y2": scores["cond_scores"][:,1],
            "full_score": scores["full_score"][:,0],
            "cond_full_score": scores["cond_full_score"][:,0]}

def design_matrix(columns, names):
    return np.column_stack([columns[name] for name in names])

def fit_estimator(spec, columns, y):
    """
    Fit one estimator by OLS or 2SLS

    Parameters
    ----------
    spec : EstimatorSpec
    columns : dict
        named replication columns
    y : np.array
        replication outcome

    Returns
    -------
    np.array
        coefficients, one per regressor
    np.array
        covariance matrix of the coefficients

    Raises
    ------
    NumericalSingularityError
        naming the estimator
    """
    n = len(y)
    X = design_matrix(columns, spec.regressors)
    try:
        if spec.method == "ols":
            est = solve_ls(y, X)
            cov = ols_covariance(y, X, est, n)
        else:
            Z = design_matrix(columns, spec.instruments)
            A = solve_ls(X, Z)     # first stage, multivariate OLS
            pred_X = Z @ A         # predicted regressors
            est = solve_ls(y, pred_X) # second stage
            cov = iv_covariance(y, X, pred_X, est, n)
    except NumericalSingularityError as err:
        raise NumericalSingularityError(f"estimator {spec.name}: {err}") from err
    return est, cov

def fit_all(columns, y, estimators=ESTIMATORS):
    """
    Fit every estimator on the same replication sample

    Returns
    -------
    dict
        estimator name -> (coefficients, covariance)
    """
    return {spec.name: fit_estimator(spec, columns, y) for spec in estimators}
