"""
Symmetric eigendecomposition with an explicit descending-eigenvalue ordering, and the noise whitening used by MNF.
"""

import numpy as np
import scipy.linalg

import hyreduce
from hyreduce.errors import DegenerateInput

def eigen( A, flip=True ):
    """
    Compute the eigenvalues and eigenvectors of a symmetric matrix, sorted from largest to smallest eigenvalue.

    The ordering is enforced here (rather than relying on the solver's convention) as every component ranking
    downstream depends on it.

    Args:
        A (ndarray): a symmetric (b, b) matrix. It is symmetrised before decomposition to remove round-off.
        flip (bool): True if the sign of each eigenvector should be chosen such that its largest-magnitude loading
                     is positive, giving reproducible signs between fits. Default is True.
    Returns:
        values (b,) sorted in descending order and vectors (b, b), such that vectors[:, i] belongs to values[i].
    """
    A = np.asarray(A, dtype=np.float64)
    assert A.ndim == 2 and A.shape[0] == A.shape[1], "Error - matrix must be square, not %s." % (A.shape,)
    values, vectors = scipy.linalg.eigh((A + A.T) / 2)

    idx = np.argsort(values, kind='stable')[::-1]
    values = values[idx]
    vectors = vectors[:, idx]

    if flip:
        big = np.argmax(np.abs(vectors), axis=0)
        signs = np.sign(vectors[big, np.arange(vectors.shape[1])])
        signs[signs == 0] = 1
        vectors = vectors * signs[None, :]
    return values, vectors

def whitening_matrix( noise_cov ):
    """
    Build the noise whitening matrix F = E diag(l^-1/2), where (l, E) are the eigenpairs of the noise covariance.
    Projecting data with F gives noise with unit variance and no band-to-band correlation. Noise covariances whose
    smallest eigenvalue is below hyreduce.tolerance times the largest are treated as singular.

    Args:
        noise_cov (ndarray): the (b, b) noise covariance matrix.
    Returns:
        F (b, b).
    """
    values, vectors = eigen(noise_cov)
    tol = max(values[0], 0) * max(hyreduce.tolerance, len(values) * np.finfo(np.float64).eps)
    if not values[-1] > tol:
        raise DegenerateInput("Noise covariance is singular (smallest eigenvalue is %g), so noise cannot be whitened. "
                              "Set smooth=True or choose a different noise sample region." % values[-1])
    return vectors @ np.diag(values ** -0.5)

def whiten( cov, F ):
    """
    Transform a covariance matrix into noise-whitened space, F^T cov F.
    """
    W = F.T @ np.asarray(cov, dtype=np.float64) @ F
    return (W + W.T) / 2
