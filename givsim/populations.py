from collections import namedtuple

import numpy as np

from .scores import block_rows, genotype_dot

"""
Draw genotypes, marker effects and errors and combine them into
the exposure T and the outcome y
"""

Population = namedtuple("Population", ["markers", "T", "y"])

def simulate_markers(rng, n, n_markers):
    """
    Genotype dosages drawn from Binomial(2, 0.5), stored as int8

    Parameters
    ----------
    rng : np.random.Generator
    n : int
        number of individuals
    n_markers : int
        number of markers

    Returns
    -------
    np.array
        (n, n_markers) int8 matrix with entries in {0,1,2}
    """
    markers = np.empty((n, n_markers), dtype=np.int8)
    step = block_rows(n_markers)
    # fill in row blocks to avoid a full 64-bit temporary
    for start in range(0, n, step):
        stop = min(start+step, n)
        markers[start:stop] = rng.binomial(2, 0.5, size=(stop-start, n_markers))
    return markers

def draw_marker_effects(rng, n_markers, rho):
    """
    Marker effects on y (column 0) and T (column 1), jointly normal
    with unit variances and correlation rho

    Returns
    -------
    np.array
        (n_markers, 2)
    """
    sigmab = np.array([[1, rho],[rho, 1]])
    return rng.multivariate_normal([0,0], sigmab, size=n_markers)

def draw_errors(rng, n, rho_e):
    """
    Error terms for y (column 0) and T (column 1)

    Returns
    -------
    np.array
        (n, 2)
    """
    sigmae = np.array([[1, rho_e],[rho_e, 1]])
    return rng.multivariate_normal([0,0], sigmae, size=n)

def combine_population(markers, zeta, errors, weights, delta):
    """
    Build T and y from genotypes, marker effects and errors

    Parameters
    ----------
    markers : np.array
        (n, m) genotypes
    zeta : np.array
        (m, 2) marker effects, column 0 for y and column 1 for T
    errors : np.array
        (n, 2) errors, column 0 for y and column 1 for T
    weights : MarkerWeights
    delta : float
        causal effect of T on y

    Returns
    -------
    np.array
        T
    np.array
        y
    """
    genetic = genotype_dot(markers, zeta) # (n,2) marker components
    T = genetic[:,1]*weights.m_weight_T + errors[:,1]*weights.e_weight_T
    y = genetic[:,0]*weights.m_weight_y + delta*T + errors[:,0]*weights.e_weight_y
    return T, y

def simulate_population(rng, n, zeta, config, weights):
    """
    Simulate one population sharing the marker effects zeta

    Parameters
    ----------
    rng : np.random.Generator
    n : int
        population size
    zeta : np.array
        (m, 2) marker effects
    config : SimulationConfig
    weights : MarkerWeights

    Returns
    -------
    Population
    """
    markers = simulate_markers(rng, n, zeta.shape[0])
    errors = draw_errors(rng, n, config.rho_e)
    T, y = combine_population(markers, zeta, errors, weights, config.delta)
    return Population(markers, T, y)
