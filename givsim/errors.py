"""
Exceptions raised by the simulation pipeline
"""

class ConfigurationError(ValueError):
    """Invalid arguments or an infeasible heritability/delta combination."""


class NumericalSingularityError(ArithmeticError):
    """A design matrix could not be inverted (per marker or per estimator)."""


class ResourceExhaustionError(MemoryError):
    """Allocation of a population matrix failed."""
