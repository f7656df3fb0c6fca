"""
Raster adapters. hyreduce does not read or write raster files itself; instead, datasets loaded elsewhere are wrapped
in an adapter that exposes the few capabilities the transforms need.
"""

import numpy as np

from hyreduce.errors import InvalidArgument
from hyreduce.hydata import HyData
from .adapters import RasterShape, RasterAdapter, ArrayAdapter, TableAdapter, SpyAdapter

def as_adapter( data, nodata=None ):
    """
    Wrap a dataset in the appropriate RasterAdapter.

    Args:
        data: a RasterAdapter, HyData instance, numpy array (bands in the last axis) or a spectral image
              object (anything exposing `read_bands(...)` and a (rows, cols, bands) `shape`).
        nodata: a missing value sentinel. Default is None (use the dataset's own sentinel or treat nans as missing).
    Returns:
        a RasterAdapter instance.
    """
    if isinstance(data, RasterAdapter):
        return data
    if isinstance(data, HyData):
        if data.data is None:
            raise InvalidArgument("Dataset contains no data.")
        if data.is_point():
            return TableAdapter(data, nodata)
        return ArrayAdapter(data, nodata)
    if isinstance(data, np.ndarray):
        if data.ndim < 2:
            raise InvalidArgument("Array must have at least two dimensions (pixels and bands), not %d." % data.ndim)
        if data.ndim == 2:
            return TableAdapter(data, nodata)
        return ArrayAdapter(data, nodata)
    if hasattr(data, 'read_bands') and len(getattr(data, 'shape', ())) == 3:
        return SpyAdapter(data, nodata)
    raise InvalidArgument("Unsupported raster type %s." % type(data))
