"""
Exception hierarchy for CytoMark.

Input and configuration problems derive from ``ValueError`` and fit
problems from ``RuntimeError`` so callers catching the builtin types keep
working.
"""


class CytoMarkError(Exception):
    """Base class for all CytoMark errors."""


class ConfigurationError(CytoMarkError, ValueError):
    """Invalid or inconsistent analysis settings."""


class InputDataError(CytoMarkError, ValueError):
    """Missing or malformed input files, columns or feature matrices."""


class DegenerateDataError(CytoMarkError, ValueError):
    """A class or partition is empty where two classes are required."""


class FitError(CytoMarkError, RuntimeError):
    """A model fit failed (solver error or non-convergence in strict mode)."""

    def __init__(self, message: str, alpha: float = None, lam: float = None):
        super().__init__(message)
        self.alpha = alpha
        self.lam = lam
