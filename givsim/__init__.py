"""
Monte Carlo comparison of OLS, Mendelian randomization and genetic
instrumental variable (GIV) estimators of a causal effect when markers
act on both the exposure and the outcome.

This file imports all necessary functions.
"""
from .errors import *
from .linalg import *
from .context import *
from .populations import *
from .gwas import *
from .scores import *
from .estimators import *
from .results import *
from .driver import *
from .summary import *
