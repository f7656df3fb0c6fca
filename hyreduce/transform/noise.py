"""
Estimate band noise covariance using spatial neighbour differencing.
"""

import numpy as np
from tqdm import tqdm

import hyreduce
from hyreduce.errors import InvalidArgument, DegenerateInput
from hyreduce.io import as_adapter
from .stats import scatter

def _shift( a, axis, first ):
    """
    Return a view of a that drops the last (first=True) or first (first=False) entry along axis.
    """
    sl = [slice(None)] * a.ndim
    sl[axis] = slice(0, -1) if first else slice(1, None)
    return a[tuple(sl)]

def estimate_noise( data, smooth=False, eps=None, axis=None, batch=None, seed=None, vb=False, nodata=None ):
    """
    Estimate the noise covariance matrix of a raster.

    Uses the Minimum/Maximum Autocorrelation Factor approach of Switzer and Green (1984): noise is estimated from
    differences between vertically adjacent pixels, which assumes that the signal varies slowly in space. For
    best results pass a spectrally homogeneous region (e.g. an open field or body of water).

    Args:
        data: the raster or noise sample region (anything accepted by hyreduce.io.as_adapter). For pixel tables,
              consecutive rows are treated as neighbours.
        smooth: True if a small dither (0 or eps, chosen at random for each difference) should be added so that
                bands with constant values do not produce a zero noise variance. Default is False.
        eps: the dither magnitude. Default is None (hyreduce.smooth_epsilon for floats or 1 for integer data).
        axis: the spatial axis to difference along. Default is None (the adapter's line axis).
        batch: number of bands to read at once. Default is None (hyreduce.band_batch_size).
        seed: seed or numpy Generator used for the dither. Default is None.
        vb: True if progress bars should be displayed. Default is False.
        nodata: missing value sentinel. Default is None (use the dataset's sentinel, or nans).
    Returns:
        a (b, b) float64 noise covariance matrix.
    """
    src = as_adapter(data, nodata)
    dims = src.shape.dims
    if axis is None:
        axis = src.line_axis
    if not 0 <= axis < len(dims):
        raise InvalidArgument("axis must be in the interval [0, %d], not %s." % (len(dims) - 1, axis))
    if dims[axis] < 2:
        raise DegenerateInput("Noise sample needs at least two lines along axis %d." % axis)

    # pairs of neighbours where both pixels are valid in every band
    valid = src.valid_mask(batch=batch).reshape(dims)
    pairs = (_shift(valid, axis, True) & _shift(valid, axis, False)).ravel()
    if pairs.sum() < 2:
        raise DegenerateInput("Noise sample contains %d valid neighbour pairs, but at least two are needed." % pairs.sum())

    # compute differences in band groups
    rng = np.random.default_rng(seed)
    loop = src.batches(batch)
    if vb:
        loop = tqdm(loop, desc='Estimating noise', leave=False)
    cols = []
    for bands in loop:
        X = src.to_spatial(src.read_bands(bands))
        d = _shift(X, axis, True).astype(np.float64) - _shift(X, axis, False)
        d = d.reshape(-1, len(bands))[pairs]
        if smooth:
            e = eps
            if e is None:
                e = 1 if np.issubdtype(X.dtype, np.integer) else hyreduce.smooth_epsilon
            d += rng.choice([0.0, float(e)], size=d.shape)
        cols.append(d)

    _, cov = scatter(np.hstack(cols))
    ncm = 0.5 * cov

    # a zero noise variance cannot be whitened
    zero = np.flatnonzero(np.diag(ncm) == 0)
    if len(zero) > 0:
        raise DegenerateInput("Zero variance encountered in noise estimate for bands %s! Set smooth=True or choose a "
                              "different noise sample region." % list(zero))
    return ncm
