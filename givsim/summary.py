import os

import numpy as np
import pandas as pd
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import seaborn as sns
from scipy import stats

"""
Summaries of the estimated causal effect across repetitions
"""

def _t_index(spec):
    return spec.regressors.index("T")

def summarize_results(results, level=0.95):
    """
    Performance of each estimator for the coefficient on T

    Parameters
    ----------
    results : SimulationResults
    level : float, optional
        confidence level used for coverage

    Returns
    -------
    pd.DataFrame
        one row per estimator with the number of completed repetitions,
        mean and SD of the estimate, mean standard error, bias and
        coverage of delta
    """
    delta = results.config.delta
    z = stats.norm.ppf(0.5+level/2)
    done = results.completed
    summary = pd.DataFrame(index=[spec.name for spec in results.estimators],
                           columns=["method","reps","mean","sd","mean_se","bias","coverage"])
    for spec in results.estimators:
        k = _t_index(spec)
        est = results.coef[spec.name][done,k]
        se = np.sqrt(results.cov[spec.name][k,k,done])
        summary.loc[spec.name,"method"] = spec.method
        summary.loc[spec.name,"reps"] = len(est)
        if len(est) == 0:
            continue
        summary.loc[spec.name,"mean"] = est.mean()
        summary.loc[spec.name,"sd"] = est.std(ddof=1) if len(est) > 1 else np.nan
        summary.loc[spec.name,"mean_se"] = se.mean()
        summary.loc[spec.name,"bias"] = est.mean()-delta
        # share of intervals est +/- z*se containing delta
        summary.loc[spec.name,"coverage"] = np.mean(np.abs(est-delta) <= z*se)
    return summary.infer_objects()

def plot_estimates(results, path):
    """
    Box plot of the estimated coefficient on T for each estimator

    Parameters
    ----------
    results : SimulationResults
    path : str
        image file to write
    """
    done = results.completed
    frames = [pd.DataFrame({"estimator": spec.name,
                            "estimate": results.coef[spec.name][done,_t_index(spec)]})
              for spec in results.estimators]
    data = pd.concat(frames, ignore_index=True)
    fig, ax = plt.subplots(figsize=(10,5))
    sns.boxplot(data=data, x="estimator", y="estimate", color="#069995", ax=ax)
    ax.axhline(results.config.delta, color="black", linestyle="--")
    ax.set_xlabel("")
    ax.set_ylabel("Estimated effect of T on y")
    sns.despine()
    fig.tight_layout()
    fig.savefig(path, dpi=200)
    plt.close(fig)
    return path

def write_summary(results, output):
    """
    Write the summary table and plot next to an HDF5 results file

    Returns
    -------
    pd.DataFrame
        the summary table
    """
    base = os.path.splitext(output)[0]
    summary = summarize_results(results)
    summary.to_csv(f"{base}_summary.txt", sep="\t")
    if results.completed.any():
        plot_estimates(results, f"{base}_estimates.png")
    return summary
