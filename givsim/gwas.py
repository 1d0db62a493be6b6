from functools import partial

import numpy as np
import tqdm

from .errors import NumericalSingularityError
from .linalg import solve_ls

"""
Simulated GWAS: single marker regressions for every marker of the
discovery population. The resulting (markers x 7) matrix is the only
information carried over to the replication sample.
"""

RESULT_COLUMNS = ["beta1_y",          # y ~ marker, first half
                  "beta2_y",          # y ~ marker, second half
                  "beta_T",           # T ~ marker, second half
                  "beta1_y_cond",     # y ~ marker + T, first half
                  "beta2_y_cond",     # y ~ marker + T, second half
                  "beta_y_full",      # y ~ marker, full sample
                  "beta_y_cond_full"] # y ~ marker + T, full sample

def marker_regressions(item, y, T, spl):
    """
    Run the seven regressions for one marker

    Parameters
    ----------
    item : tuple
        (marker index, genotype column)
    y : np.array
        outcome for the discovery population
    T : np.array
        exposure for the discovery population
    spl : int
        individuals [0, spl) form the first half, the rest the second

    Returns
    -------
    np.array
        marker coefficients in RESULT_COLUMNS order, intercepts dropped

    Raises
    ------
    NumericalSingularityError
        naming the marker whose design matrix is singular
    """
    j, marker = item
    marker = np.asarray(marker, dtype=float)
    ones = np.ones(len(marker))
    X = np.column_stack((ones, marker))
    X_cond = np.column_stack((ones, marker, T))
    first, second = slice(0, spl), slice(spl, None)
    try:
        # normal GWAS
        beta1_y = solve_ls(y[first], X[first])
        beta2_y = solve_ls(y[second], X[second])
        beta_T = solve_ls(T[second], X[second])
        # conditional GWAS
        beta1_y_cond = solve_ls(y[first], X_cond[first])
        beta2_y_cond = solve_ls(y[second], X_cond[second])
        # full sample
        beta_y_full = solve_ls(y, X)
        beta_y_cond_full = solve_ls(y, X_cond)
    except NumericalSingularityError as err:
        raise NumericalSingularityError(f"marker {j}: {err}") from err
    return np.array([beta1_y[1], beta2_y[1], beta_T[1], beta1_y_cond[1],
                     beta2_y_cond[1], beta_y_full[1], beta_y_cond_full[1]])

def run_gwas(ctx, markers, y, T):
    """
    Map marker_regressions over every marker column using the context's pool.
    Rows of the result follow the marker order of the input regardless of
    which worker finishes first.

    Parameters
    ----------
    ctx : SimulationContext
    markers : np.array
        (n_pop, m) discovery genotypes
    y : np.array
        discovery outcome
    T : np.array
        discovery exposure

    Returns
    -------
    np.array
        (m, 7) GWAS result matrix
    """
    n_markers = markers.shape[1]
    worker = partial(marker_regressions, y=y, T=T, spl=ctx.config.spl)
    columns = ((j, markers[:,j]) for j in range(n_markers))
    chunksize = max(1, n_markers//(4*ctx.config.workers))
    res = np.empty((n_markers, len(RESULT_COLUMNS)))
    n_done = 0
    for j, row in enumerate(tqdm.tqdm(ctx.pool.imap(worker, columns, chunksize),
                                      total=n_markers, disable=not ctx.progress)):
        res[j] = row
        n_done += 1
    # downstream shapes are fixed, a missing row is an error
    if n_done != n_markers:
        raise RuntimeError(f"GWAS returned {n_done} rows for {n_markers} markers")
    return res
