"""
Fit Minimum Noise Fraction (MNF) transforms to rasters.

MNF consists of two principal component rotations. The first uses the eigenvectors of the noise covariance matrix
to decorrelate and rescale the noise (noise whitening), such that the noise has unit variance and no band-to-band
correlation. The second is a standard PCA rotation of the whitened data. Components are thus ordered by (approximately)
decreasing signal-to-noise ratio, concentrating noise in the last components. Data can be denoised by a forward
transform, discarding the noisy components and an inverse transform.

Reference:
    Green et al. (1988), "Transformation for ordering multispectral data in terms of image quality with implications
    for noise removal," IEEE Transactions on Geoscience and Remote Sensing, 26(1), 65-74.
"""

import numpy as np

import hyreduce
from hyreduce.errors import DegenerateInput, DimensionMismatch
from hyreduce.io import as_adapter
from hyreduce.filter import sample, check_fraction
from .stats import estimate_stats
from .noise import estimate_noise
from .eigen import eigen, whitening_matrix, whiten
from .model import MNFModel

def check_noise_cov( noise_cov ):
    """
    Validate a precomputed noise covariance matrix and return it as a float64 array.
    """
    N = np.asarray(noise_cov, dtype=np.float64)
    if N.ndim != 2 or N.shape[0] != N.shape[1]:
        raise DimensionMismatch("Noise covariance must be a square matrix, not %s." % (N.shape,))
    if not np.allclose(N, N.T, rtol=hyreduce.tolerance, atol=1e-12):
        raise DegenerateInput("Noise covariance is not symmetric.")
    zero = np.flatnonzero(~(np.diag(N) > 0))
    if len(zero) > 0:
        raise DegenerateInput("Noise covariance has non-positive variance for bands %s! Set smooth=True when "
                              "estimating noise or choose a different noise sample region." % list(zero))
    return N

def fit_mnf( data, noise_sample=None, noise_cov=None, smooth=False, fraction=1.0, eps=None,
             batch=None, seed=None, vb=False, nodata=None ):
    """
    Fit an MNF transform to a raster.

    Args:
        data: the raster to fit (HyData instance, numpy array with bands in the last axis, spectral image or
              RasterAdapter).
        noise_sample: a spectrally homogeneous region (raster with the same bands) used to estimate the noise
                      covariance. Default is None (estimate noise from data).
        noise_cov: a precomputed (b, b) noise covariance matrix (e.g. from estimate_noise(...)). If passed,
                   noise_sample and smooth are ignored.
        smooth: True if a small dither should be added when estimating noise so that bands with constant values
                in the noise sample do not cause the fit to fail. Default is False.
        fraction: the fraction of valid pixels used to estimate the data covariance, in the interval (0, 1].
        eps: the dither magnitude used when smooth is True. Default is None (hyreduce.smooth_epsilon).
        batch: number of bands read at once. Default is None (hyreduce.band_batch_size).
        seed: seed or numpy Generator used for sampling and dithering. Default is None.
        vb: True if progress bars should be displayed. Default is False.
        nodata: missing value sentinel. Default is None (use the dataset's sentinel, or nans).
    Returns:
        a MNFModel retaining all b components.
    """
    check_fraction(fraction)
    rng = np.random.default_rng(seed)

    # noise covariance
    if noise_cov is None:
        region = data if noise_sample is None else noise_sample
        noise_cov = estimate_noise(region, smooth=smooth, eps=eps, batch=batch, seed=rng, vb=vb, nodata=nodata)
    N = check_noise_cov(noise_cov)

    # data covariance
    src = as_adapter(data, nodata)
    X = sample(src, fraction=fraction, batch=batch, seed=rng, vb=vb)
    if (X < 0).any():
        print("Warning - image contains negative pixels. This can cause unstable behaviour...")
    if X.shape[1] != N.shape[0]:
        raise DimensionMismatch("Data has %d bands but the noise covariance has %d." % (X.shape[1], N.shape[0]))
    stats = estimate_stats(X, 'cov')

    # whiten noise, then rotate by variance in whitened space
    F = whitening_matrix(N)
    values, G = eigen(whiten(stats.cov, F))
    wav, names = src.band_metadata()
    return MNFModel(stats.mean, F @ G, values, N, stats.cov, wavelengths=wav, band_names=names)
