"""
Global simulation parameters
"""

# Population sizes
N_POP = 100000 # discovery (GWAS) population
N_REPLIC = 10000 # replication sample

# Markers and repetitions
N_MARKERS = 10000
REPS = 20

# Heritabilities and correlation of the error terms (endogeneity)
H2Y = 0.8
H2T = 0.2
RHO_E = 0

# Reproducibility and output
SEED = 1
NAME = "pleiotropy"
OUTPUT_DIR = "output/"

# What to do when a repetition fails: "stop" or "skip"
ON_ERROR = "stop"
