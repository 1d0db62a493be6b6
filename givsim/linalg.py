import numpy as np
import scipy.linalg

from .errors import NumericalSingularityError

"""
Least squares solve and the two covariance estimators used by every
regression in the simulation
"""

def solve_ls(y, X):
    """
    Ordinary least squares through the normal equations

    Parameters
    ----------
    y : np.array
        response, shape (n,) or (n,k)
    X : np.array
        design matrix with full column rank, shape (n,p)

    Returns
    -------
    np.array
        coefficients, shape (p,) or (p,k)

    Raises
    ------
    NumericalSingularityError
        if X'X cannot be inverted
    """
    XtX = X.T @ X
    Xty = X.T @ y
    try:
        beta = scipy.linalg.solve(XtX, Xty, assume_a="sym")
    except (scipy.linalg.LinAlgError, ValueError) as err:
        raise NumericalSingularityError(f"X'X is singular ({err})") from err
    # a numerically singular but unflagged system shows up as inf/nan
    if not np.all(np.isfinite(beta)):
        raise NumericalSingularityError("X'X is singular (non-finite solution)")
    return beta

def _gram_inverse(X):
    try:
        return scipy.linalg.inv(X.T @ X)
    except (scipy.linalg.LinAlgError, ValueError) as err:
        raise NumericalSingularityError(f"X'X is singular ({err})") from err

def ols_covariance(y, X, bhat, n):
    """
    Homoskedastic OLS variance-covariance matrix, s2 * (X'X)^-1
    with s2 = e'e / (n - p)

    Parameters
    ----------
    y : np.array
        response
    X : np.array
        regressors used in the fit
    bhat : np.array
        fitted coefficients
    n : int
        number of observations, must exceed the number of coefficients

    Returns
    -------
    np.array
        (p,p) covariance matrix
    """
    k = len(bhat)
    if n <= k:
        raise ValueError(f"need more observations ({n}) than coefficients ({k})")
    e = y - X @ bhat
    s2 = (e @ e)/(n-k)
    return _gram_inverse(X) * s2

def iv_covariance(y, X, X_pred, bhat, n):
    """
    2SLS variance-covariance matrix. The residual is taken against the
    original regressors X, the Gram matrix from the first stage fitted
    regressors X_pred, and s2 = e'e / n (no degrees of freedom correction).

    Parameters
    ----------
    y : np.array
        response
    X : np.array
        original (endogenous) regressors
    X_pred : np.array
        first stage predicted regressors
    bhat : np.array
        second stage coefficients
    n : int
        number of observations

    Returns
    -------
    np.array
        (p,p) covariance matrix
    """
    e = y - X @ bhat
    s2 = (e @ e)/n
    return _gram_inverse(X_pred) * s2
