"""
Sample statistics (mean and covariance or correlation) of pixel matrices.
"""

import numpy as np
import spectral

from hyreduce.errors import InvalidArgument, DegenerateInput

MODES = ('cov', 'cor')
"""Scatter matrices that can be used to fit a PCA (covariance or correlation)."""

def check_mode( mode ):
    """
    Normalise a covariance mode name ('cov' or 'cor', case-insensitive, a leading ':' is ignored) or raise
    InvalidArgument if it is not recognised.
    """
    m = mode.lower().lstrip(':') if isinstance(mode, str) else None
    if m not in MODES:
        raise InvalidArgument("mode must be one of %s, not %s." % (MODES, mode))
    return m

def scatter( X, chunk=65536 ):
    """
    Compute the mean and (unbiased) covariance of a pixel matrix. Accumulation is always done in double precision,
    in chunks of rows to bound memory use.

    Args:
        X (ndarray): a (n, b) array of pixels without missing values.
        chunk (int): number of rows to accumulate at once.
    Returns:
        mean (b,) and covariance (b, b) float64 arrays.
    """
    X = np.asarray(X)
    assert X.ndim == 2, "Error - pixel matrix must be 2D, not %dD." % X.ndim
    n, b = X.shape
    if n < 2:
        raise DegenerateInput("At least two pixels are needed to estimate a covariance, but %d were given." % n)

    mean = np.zeros(b, dtype=np.float64)
    for i in range(0, n, chunk):
        mean += X[i:i + chunk].sum(axis=0, dtype=np.float64)
    mean /= n

    S = np.zeros((b, b), dtype=np.float64)
    for i in range(0, n, chunk):
        C = X[i:i + chunk].astype(np.float64) - mean
        S += C.T @ C
    S /= (n - 1)
    return mean, (S + S.T) / 2 # enforce exact symmetry

def covariance_to_correlation( cov ):
    """
    Convert a covariance matrix to a correlation matrix.

    Returns:
        cor (b, b) and the per-band standard deviations (b,).
    """
    std = np.sqrt(np.clip(np.diag(cov), 0, None))
    if (std == 0).any():
        raise DegenerateInput("Bands %s have zero variance, so a correlation matrix cannot be computed."
                              % list(np.flatnonzero(std == 0)))
    cor = cov / np.outer(std, std)
    np.fill_diagonal(cor, 1.0)
    return cor, std

def estimate_stats( X, mode='cov' ):
    """
    Estimate the mean and covariance (or correlation) matrix of a pixel matrix.

    Args:
        X (ndarray): a (n, b) array of pixels without missing values.
        mode (str): 'cov' to compute the covariance matrix or 'cor' to compute the correlation matrix.
    Returns:
        a spectral.GaussianStats instance with the mean, selected matrix (stored as `cov`) and sample count.
    """
    mode = check_mode(mode)
    mean, cov = scatter(X)
    if mode == 'cor':
        cov, _ = covariance_to_correlation(cov)
    return spectral.GaussianStats(mean, cov, np.shape(X)[0])
