"""
Apply fitted transforms: project rasters from band space into component space and back.
"""

import numbers
import numpy as np
from tqdm import tqdm

from hyreduce.errors import InvalidArgument, DimensionMismatch
from hyreduce.hydata import HyData, valid_pixels
from hyreduce.io import as_adapter

def check_components( k, b ):
    """
    Raise InvalidArgument unless k is an integer in the interval [1, b].
    """
    if isinstance(k, bool) or not isinstance(k, numbers.Integral) or not 1 <= k <= b:
        raise InvalidArgument("Number of components must be an integer in the interval [1, %d], not %s." % (b, k))

def check_fill( fill, dtype ):
    """
    Raise InvalidArgument unless fill can be stored in an array of the given dtype (e.g. nan cannot be stored as an
    integer).
    """
    try:
        f = float(fill)
    except (TypeError, ValueError):
        raise InvalidArgument("fill must be a number, not %s." % (fill,))
    dtype = np.dtype(dtype)
    if np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        if not (np.isfinite(f) and f.is_integer() and info.min <= f <= info.max):
            raise InvalidArgument("fill value %s cannot be stored as %s. Pass an integer fill value." % (fill, dtype))

def _apply( src, M, batch, vb, desc ):
    """
    Multiply the pixels of src by M, accumulating over band groups. Returns the (pixels, M.shape[1]) result and
    a mask that is True for pixels with no missing bands. Missing values are zeroed before multiplication.
    """
    out = np.zeros((src.pixel_count(), M.shape[1]), dtype=np.float64)
    valid = np.ones(src.pixel_count(), dtype=bool)
    loop = src.batches(batch)
    if vb:
        loop = tqdm(loop, desc=desc, leave=False)
    for bands in loop:
        X = src.read_bands(bands)
        v = valid_pixels(X, src.nodata)
        valid &= v
        X = np.where(v[:, None], X, 0).astype(np.float64)
        out += X @ M[bands, :]
    return out, valid

def _finish( src, out, valid, fill, dtype ):
    out = out.astype(dtype)
    out[~valid, :] = fill
    return src.write(out, fill)

def forward( model, data, k=None, fill=np.nan, dtype=np.float32, nodata=None, batch=None, vb=False ):
    """
    Project a raster into component space, keeping only the first k components.

    Pixels are centered with the fitted mean (and divided by the fitted scale for correlation-based PCA) before
    projection. As every component mixes all bands, a pixel missing in any band is missing in every component.

    Args:
        model: a fitted PCAModel or MNFModel.
        data: the raster to transform (HyData instance, numpy array with bands in the last axis, spectral image or
              RasterAdapter). This need not be the raster the model was fitted on, but must have the same bands.
        k: the number of components to keep, in the interval [1, b]. Default is None (keep all b).
        fill: the value written to missing pixels of the output. Must be an integer for integer dtypes. Default is nan.
        dtype: the output data type. Default is float32.
        nodata: missing value sentinel of the input. Default is None (use the dataset's sentinel, or nans).
        batch: number of bands read at once. Default is None (hyreduce.band_batch_size).
        vb: True if progress bars should be displayed. Default is False.
    Returns:
        a dataset of the same kind and spatial shape as data with k bands.
    """
    b = model.band_count()
    if k is None:
        k = b
    check_components(k, b)
    check_fill(fill, dtype)
    src = as_adapter(data, nodata)
    if src.band_count() != b:
        raise DimensionMismatch("Transform was fitted on %d bands but data has %d." % (b, src.band_count()))

    # fold centering and scaling into the projection: ((x - m) / s) @ P = x @ (P / s) - (m / s) @ P
    P = model.projection[:, :k] / model.scale[:, None]
    out, valid = _apply(src, P, batch, vb, 'Projecting bands')
    out -= model.mean @ P

    O = _finish(src, out, valid, fill, dtype)
    if isinstance(O, HyData):
        O.header.set_band_names(["%s %d" % (model.method.upper(), i + 1) for i in range(k)])
        O.header.set_wavelengths(list(model.statistics().values())[-1][:k]) # cumulative statistics as wavelengths
    return O

def inverse( model, data, fill=np.nan, dtype=np.float32, nodata=None, batch=None, vb=False ):
    """
    Map a previously transformed raster back to band space. Retaining all components reproduces the original data
    (up to floating point precision); retaining fewer discards the remaining components (e.g. for denoising).

    Args:
        model: the fitted PCAModel or MNFModel used to transform the data.
        data: the transformed raster. Its c bands are taken to be the first c components of model.
        fill: the value written to missing pixels of the output. Must be an integer for integer dtypes. Default is nan.
        dtype: the output data type. Default is float32.
        nodata: missing value sentinel of the input. Default is None (use the dataset's sentinel, or nans).
        batch: number of bands read at once. Default is None (hyreduce.band_batch_size).
        vb: True if progress bars should be displayed. Default is False.
    Returns:
        a dataset of the same kind and spatial shape as data with b bands. HyData outputs are given the
        wavelengths and band names of the data the model was fitted on.
    """
    b = model.band_count()
    check_fill(fill, dtype)
    src = as_adapter(data, nodata)
    c = src.band_count()
    if not 1 <= c <= b:
        raise InvalidArgument("Data must have between 1 and %d components, not %d." % (b, c))

    out, valid = _apply(src, model.inverse_projection[:c, :], batch, vb, 'Restoring bands')
    out *= model.scale[None, :]
    out += model.mean[None, :]

    O = _finish(src, out, valid, fill, dtype)
    if isinstance(O, HyData):
        O.header.set_wavelengths(model.wavelengths)
        O.header.set_band_names(model.band_names)
    return O
