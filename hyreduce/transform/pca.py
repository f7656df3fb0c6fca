"""
Fit Principal Component Analysis (PCA) transforms to rasters.

Multi-band imagery typically has many highly correlated bands. PCA rotates these into uncorrelated components
ordered from highest to lowest variance, which can be used to compress a dataset into a few bands while retaining
most of its spectral information, or to separate features shared by most bands from those specific to a few.
"""

from hyreduce.io import as_adapter
from hyreduce.filter import sample, check_fraction
from .stats import check_mode, estimate_stats, covariance_to_correlation
from .eigen import eigen
from .model import PCAModel

def fit_pca( data, mode='cov', fraction=1.0, batch=None, seed=None, vb=False, nodata=None ):
    """
    Fit a PCA transform to a raster.

    Args:
        data: the raster to fit (HyData instance, numpy array with bands in the last axis, spectral image or
              RasterAdapter). A (n, b) array is treated as a table of pixels.
        mode: 'cov' to rotate by the covariance matrix or 'cor' to rotate by the correlation matrix. In the latter
              case bands are also divided by their standard deviation before projection. Default is 'cov'.
        fraction: the fraction of valid pixels used to estimate statistics, in the interval (0, 1]. Values below 1
                  are faster but less accurate. Default is 1.0.
        batch: number of bands read at once. Default is None (hyreduce.band_batch_size).
        seed: seed or numpy Generator used to draw the pixel sample. Default is None.
        vb: True if progress bars should be displayed. Default is False.
        nodata: missing value sentinel. Default is None (use the dataset's sentinel, or nans).
    Returns:
        a PCAModel retaining all b components (truncation happens when the model is applied).
    """
    mode = check_mode(mode)
    check_fraction(fraction)

    src = as_adapter(data, nodata)
    X = sample(src, fraction=fraction, batch=batch, seed=seed, vb=vb)
    stats = estimate_stats(X, 'cov')
    S = stats.cov
    scale = None
    if mode == 'cor':
        S, scale = covariance_to_correlation(S)

    values, vectors = eigen(S)
    wav, names = src.band_metadata()
    return PCAModel(stats.mean, vectors, values, scale=scale, mode=mode, wavelengths=wav, band_names=names)
