"""
Exceptions raised by hyreduce. All errors are raised synchronously to the caller; nothing is retried.
"""

class HyReduceError(Exception):
    """
    Base class for all hyreduce errors.
    """
    pass

class InvalidArgument(HyReduceError, ValueError):
    """
    An argument is outside its valid range (e.g. a sampling fraction outside (0,1], an unknown covariance mode
    or a number of components outside [1, bands]).
    """
    pass

class DimensionMismatch(HyReduceError, ValueError):
    """
    The band count of a dataset does not match the band count a transform was fitted on.
    """
    pass

class DegenerateInput(HyReduceError, ArithmeticError):
    """
    The data cannot support the requested statistics (e.g. a zero-variance band in a noise estimate or a
    singular projection matrix).
    """
    pass
