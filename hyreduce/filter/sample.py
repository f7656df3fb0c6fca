"""
Utility functions for drawing pixel samples from (potentially very large and wide) rasters.
"""

import numpy as np
from tqdm import tqdm

from hyreduce.errors import InvalidArgument, DegenerateInput
from hyreduce.io import as_adapter

def check_fraction( fraction ):
    """
    Raise InvalidArgument if fraction is not in the interval (0, 1].
    """
    try:
        ok = 0 < float(fraction) <= 1
    except (TypeError, ValueError):
        ok = False
    if not ok:
        raise InvalidArgument("fraction must be in the interval (0, 1], not %s." % (fraction,))

def sample( data, fraction=1.0, batch=None, seed=None, vb=False, nodata=None ):
    """
    Draw a random sample of valid pixels (pixels with no missing bands) from a raster.

    Bands are read in groups of `batch` bands and concatenated column-wise, so that the full pixel x band matrix
    is never materialised for wide (hyperspectral) rasters.

    Args:
        data: the raster to sample (anything accepted by hyreduce.io.as_adapter).
        fraction: the fraction of valid pixels to draw (without replacement), in the interval (0, 1]. Default is
                  1.0 (use every valid pixel). At least two pixels are always drawn.
        batch: the number of bands to read at once. Default is None (use hyreduce.band_batch_size).
        seed: seed or numpy Generator used to draw the sample. Default is None (random).
        vb: True if progress bars should be displayed. Default is False.
        nodata: missing value sentinel. Default is None (use the dataset's sentinel, or nans).
    Returns:
        a (n, b) numpy array containing the sampled pixels in raster order.
    """
    check_fraction(fraction)
    src = as_adapter(data, nodata)

    # find pixels that are valid across all bands
    valid = src.valid_mask(batch=batch, vb=vb)
    idx = np.flatnonzero(valid)
    n_valid = len(idx)
    if n_valid < 2:
        raise DegenerateInput("At least two pixels without missing bands are needed, but %d were found." % n_valid)
    if n_valid < 0.5 * src.pixel_count():
        print("Warning - only %d of %d pixels have no missing bands." % (n_valid, src.pixel_count()))

    # draw sample
    n = int(np.floor(n_valid * float(fraction) + 0.5))
    n = min(n_valid, max(n, 2))
    if n < n_valid:
        rng = np.random.default_rng(seed)
        idx = np.sort(rng.choice(idx, size=n, replace=False))

    # extract bands in groups
    loop = src.batches(batch)
    if vb:
        loop = tqdm(loop, desc='Sampling pixels', leave=False)
    return np.hstack([src.read_bands(bands)[idx, :] for bands in loop])
