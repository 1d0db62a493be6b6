import numpy as np

"""
Polygenic scores: replication genotypes multiplied by per-marker
coefficients harvested from the simulated GWAS
"""

# columns of the GWAS result matrix (see gwas.RESULT_COLUMNS)
SCORE_SOURCES = {
    "scores": [0,1,2],        # S(y1), S(y2), S(T)
    "cond_scores": [3,4],     # S(y1|T), S(y2|T)
    "full_score": [5],        # S(y) from the full sample
    "cond_full_score": [6],   # S(y|T) from the full sample
}

# max genotype entries converted to float at once
BLOCK_ENTRIES = 2**24

def block_rows(n_markers):
    """number of individuals per block so a float block stays bounded"""
    return max(1, BLOCK_ENTRIES//max(1, n_markers))

def genotype_dot(markers, coef):
    """
    Matrix product of an int8 genotype matrix with float coefficients,
    evaluated in row blocks so the genotypes are never copied to float64
    in one piece

    Parameters
    ----------
    markers : np.array
        (n,m) genotype dosages
    coef : np.array
        (m,) or (m,k) coefficients

    Returns
    -------
    np.array
        (n,) or (n,k)
    """
    coef = np.asarray(coef, dtype=float)
    out = np.empty((markers.shape[0],)+coef.shape[1:])
    step = block_rows(markers.shape[1])
    for start in range(0, markers.shape[0], step):
        stop = start+step
        out[start:stop] = markers[start:stop].astype(float) @ coef
    return out

def construct_scores(markers_R, res, columns):
    """
    Scores for the replication sample

    Parameters
    ----------
    markers_R : np.array
        (n_replic, m) replication genotypes
    res : np.array
        (m, 7) GWAS result matrix
    columns : list
        result columns used as score weights

    Returns
    -------
    np.array
        (n_replic, len(columns)) scores
    """
    return genotype_dot(markers_R, res[:,columns])

def construct_all_scores(markers_R, res):
    """
    All named scores, keyed as in SCORE_SOURCES

    Returns
    -------
    dict
        name -> (n_replic, k) score matrix
    """
    return {name: construct_scores(markers_R, res, cols)
            for name, cols in SCORE_SOURCES.items()}
