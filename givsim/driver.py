import os
from datetime import datetime

from .context import SimulationContext
from .errors import NumericalSingularityError, ResourceExhaustionError
from .estimators import fit_all, replication_columns
from .gwas import run_gwas
from .populations import draw_marker_effects, simulate_population
from .results import SimulationResults
from .scores import construct_all_scores

"""
Run repetitions of the full pipeline:
discovery population -> GWAS -> replication population -> scores ->
estimators -> save
"""

def _now():
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")

def _discovery_stage(ctx, rng, zeta):
    """
    Simulate the discovery population and run the GWAS on it. The
    population only lives inside this function, so its arrays are
    released before the replication sample is drawn.

    Returns
    -------
    np.array
        (m, 7) GWAS result matrix
    """
    try:
        pop = simulate_population(rng, ctx.config.n_pop, zeta, ctx.config, ctx.weights)
    except MemoryError as err:
        raise ResourceExhaustionError(f"generating discovery population: {err}") from err
    try:
        res = run_gwas(ctx, pop.markers, pop.y, pop.T)
    except MemoryError as err:
        raise ResourceExhaustionError(f"estimating marker effects: {err}") from err
    # drop the population for memory constraints
    del pop
    return res

def _replication_stage(ctx, rng, zeta, res):
    """
    Simulate the replication sample and build its scores

    Returns
    -------
    dict
        named replication columns for the estimators
    np.array
        replication outcome
    """
    try:
        pop = simulate_population(rng, ctx.config.n_replic, zeta, ctx.config, ctx.weights)
        scores = construct_all_scores(pop.markers, res)
    except MemoryError as err:
        raise ResourceExhaustionError(f"generating replication sample: {err}") from err
    T_R, y_R = pop.T, pop.y
    # the estimators only need T, y and the scores
    del pop
    return replication_columns(T_R, scores), y_R

def run_repetition(ctx, i_rep):
    """
    One full repetition

    Parameters
    ----------
    ctx : SimulationContext
    i_rep : int
        zero-based repetition index, selects the random stream

    Returns
    -------
    dict
        estimator name -> (coefficients, covariance)
    """
    rng = ctx.repetition_rng(i_rep)
    # marker effects shared by the discovery and replication populations
    try:
        zeta = draw_marker_effects(rng, ctx.config.n_markers, ctx.config.rho)
    except MemoryError as err:
        raise ResourceExhaustionError(f"drawing marker effects: {err}") from err
    res = _discovery_stage(ctx, rng, zeta)
    columns, y_R = _replication_stage(ctx, rng, zeta, res)
    try:
        return fit_all(columns, y_R)
    except MemoryError as err:
        raise ResourceExhaustionError(f"fitting estimators: {err}") from err

def run_simulation(ctx, output=None, results=None):
    """
    Run all repetitions of a configuration, saving after each one

    Parameters
    ----------
    ctx : SimulationContext
    output : str, optional
        HDF5 path rewritten after every repetition
    results : SimulationResults, optional
        collections to fill, created when not given

    Returns
    -------
    SimulationResults

    Raises
    ------
    NumericalSingularityError, ResourceExhaustionError
        when a repetition fails and the policy is "stop"
    """
    config = ctx.config
    if results is None:
        results = SimulationResults(config)
    for i_rep in range(config.reps):
        try:
            fits = run_repetition(ctx, i_rep)
        except (NumericalSingularityError, ResourceExhaustionError) as err:
            print(f"\nRepetition {i_rep+1} failed at: {_now()} ({err})")
            if config.on_error == "stop":
                raise type(err)(f"repetition {i_rep+1}: {err}") from err
            print(f"Skipping repetition {i_rep+1}")
        else:
            results.record(i_rep, fits)
            print(f"\nRepetition {i_rep+1} completed at: {_now()}")
        if output is not None:
            results.save(output)
    return results

def simulate(config, output_dir="output/", pool=None, progress=False):
    """
    Validate a configuration and run it, writing results to
    output_dir/config.output_name()

    Parameters
    ----------
    config : SimulationConfig
    output_dir : str, optional
        directory for the HDF5 file
    pool : object, optional
        ordered parallel map (e.g. multiprocessing.Pool) for the GWAS
    progress : bool, optional
        show a progress bar over markers

    Returns
    -------
    SimulationResults
    str
        output path
    """
    ctx = SimulationContext(config, pool=pool, progress=progress)
    os.makedirs(output_dir, exist_ok=True)
    output = os.path.join(output_dir, config.output_name())
    print(f"Simulations started at: {_now()}")
    results = run_simulation(ctx, output)
    print(f"\nResults written to {output}")
    return results, output
