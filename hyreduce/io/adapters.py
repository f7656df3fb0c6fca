"""
Adapters that expose rasters from different storage backends (in-memory arrays, HyData instances, disk-backed
images opened with the `spectral` package and pixel tables) through a single capability set: shape, band-group
reads, an all-bands-present predicate and a writer that rebuilds a dataset of matching spatial shape.
"""

from collections import namedtuple

import numpy as np
from tqdm import tqdm

import hyreduce
from hyreduce.hydata import HyData, valid_pixels
from hyreduce.hyheader import HyHeader
from hyreduce.hyimage import HyImage

RasterShape = namedtuple('RasterShape', ['dims', 'bands', 'header'])
RasterShape.__doc__ = """
Immutable description of a raster: its spatial dimensions (a 1-tuple holding the pixel count for pixel tables),
its band count and the metadata (CRS, map info etc.) that should follow it through transforms.
"""

class RasterAdapter(object):
    """
    Base class for all raster adapters. Subclasses must implement read_bands(...) and write(...).
    """

    line_axis = 0
    """Spatial axis along which adjacent entries are vertical neighbours (used for noise estimation)."""

    def __init__(self, shape, nodata=None):
        self.shape = shape
        self.nodata = nodata

    def pixel_count(self):
        """
        Return the number of pixels in this raster.
        """
        return int(np.prod(self.shape.dims))

    def band_count(self):
        """
        Return the number of bands in this raster.
        """
        return self.shape.bands

    def read_bands(self, bands):
        """
        Read a group of bands.

        Args:
            bands (list): the indices of the bands to read.
        Returns:
            a (pixels, len(bands)) array in the native precision of the raster.
        """
        raise NotImplementedError

    def write(self, X, nodata=np.nan):
        """
        Rebuild a dataset of matching spatial shape from a pixel matrix.

        Args:
            X (ndarray): a (pixels, k) array.
            nodata (float): the value used to flag missing pixels in X.
        Returns:
            a dataset of the same kind as the one wrapped by this adapter, with k bands.
        """
        raise NotImplementedError

    def band_metadata(self):
        """
        Return the wavelengths and band names of this raster (each None if the header does not define one per band).
        """
        header = self.shape.header
        wav, names = None, None
        if header is not None:
            if header.has_wavelengths() and len(header.get_wavelengths()) == self.band_count():
                wav = header.get_wavelengths()
            if header.has_band_names() and len(header.get_band_names()) == self.band_count():
                names = header.get_band_names()
        return wav, names

    def batches(self, batch=None):
        """
        Split the bands of this raster into groups of at most batch bands.

        Args:
            batch (int): bands per group. Default is None (use hyreduce.band_batch_size).
        Returns:
            a list of band index lists.
        """
        if batch is None:
            batch = hyreduce.band_batch_size
        batch = max(1, int(batch))
        b = self.band_count()
        return [list(range(i, min(i + batch, b))) for i in range(0, b, batch)]

    def valid_mask(self, batch=None, vb=False):
        """
        Compute the all-bands-present predicate for each pixel, reading bands in groups.

        Returns:
            a boolean array of length pixel_count().
        """
        valid = np.ones(self.pixel_count(), dtype=bool)
        loop = self.batches(batch)
        if vb:
            loop = tqdm(loop, desc='Finding valid pixels', leave=False)
        for bands in loop:
            valid &= valid_pixels(self.read_bands(bands), self.nodata)
        return valid

    def to_spatial(self, X):
        """
        Reshape a (pixels, k) matrix to the spatial dimensions of this raster.
        """
        return X.reshape(tuple(self.shape.dims) + (X.shape[-1],))

class ArrayAdapter(RasterAdapter):
    """
    Adapter for band-last numpy arrays and HyData instances held in memory.
    """

    def __init__(self, data, nodata=None):
        self.source = None
        header = None
        if isinstance(data, HyData):
            self.source = data
            header = data.header
            if nodata is None:
                nodata = data.get_nodata()
            self.line_axis = 1 if data.is_image() else 0 # HyImage data is stored as data[x, y, band]
            data = data.data
        assert isinstance(data, np.ndarray), "Error - %s is not a numpy array." % type(data)
        assert data.ndim >= 2, "Error - array must have at least two dimensions (pixels and bands)."
        self.array = data
        super().__init__(RasterShape(tuple(data.shape[:-1]), data.shape[-1], header), nodata)

    def read_bands(self, bands):
        X = self.array.reshape(-1, self.array.shape[-1])
        if len(bands) > 0 and list(bands) == list(range(bands[0], bands[-1] + 1)):
            return X[:, bands[0]:bands[-1] + 1] # contiguous slice avoids a fancy-index copy
        return X[:, bands]

    def write(self, X, nodata=np.nan):
        out = self.to_spatial(X)
        if self.source is None:
            return out

        O = self.source.copy(data=False)
        O.data = out
        O.header.drop_all_bands()  # drop band specific attributes
        O.header.set_data_ignore_value(nodata)
        O.push_to_header()
        return O

class TableAdapter(ArrayAdapter):
    """
    Adapter for pixel tables (n x b matrices, e.g. previously sampled pixels). Pixel tables have no spatial
    structure; consecutive rows are treated as neighbours when estimating noise.
    """

    def __init__(self, data, nodata=None):
        if isinstance(data, HyData):
            assert data.is_point(), "Error - TableAdapter requires a (pixels, bands) dataset."
        else:
            assert np.ndim(data) == 2, "Error - TableAdapter requires a (pixels, bands) matrix."
        super().__init__(data, nodata)

class SpyAdapter(RasterAdapter):
    """
    Adapter for disk-backed images opened with the spectral package (e.g. spectral.open_image(...)). Bands are read
    in groups so that wide hyperspectral images are never fully loaded into memory.
    """

    def __init__(self, image, nodata=None):
        self.image = image
        metadata = getattr(image, 'metadata', {}) or {}
        if nodata is None and 'data ignore value' in metadata:
            nodata = float(metadata['data ignore value'])
        keys = HyHeader.SPATIAL_KEYS + ['wavelength', 'band names']
        header = HyHeader({k: metadata[k] for k in keys if k in metadata})
        rows, cols, bands = image.shape
        super().__init__(RasterShape((rows, cols), bands, header), nodata)

    def read_bands(self, bands):
        X = np.asarray(self.image.read_bands(list(bands)))
        return X.reshape(-1, len(bands))

    def write(self, X, nodata=np.nan):
        header = self.shape.header.copy()
        header.drop_all_bands()
        header.set_data_ignore_value(nodata)
        O = HyImage(self.to_spatial(X), header=header)
        O.push_to_header()
        return O
