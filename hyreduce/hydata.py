"""
A base class for band-last raster and pixel datasets. Inherited by HyImage.
"""

import numpy as np

from hyreduce.hyheader import HyHeader

class HyData(object):

    """
    A generic class for encapsulating multi-band data (pixel tables and images) and associated metadata.

    This class is based around a data numpy array in a representation such that the last dimension
    corresponds to individual bands (e.g. data[pointID, band] or data[px,py,band]). Missing values are flagged either
    as nans or with the 'data ignore value' stored in the header.
    """

    def __init__(self, data, header=None, **kwds):
        """
        Create a dataset from a data array.

        Args:
            data (ndarray): array such that the last dimension corresponds to individual bands.
            header (hyreduce.HyHeader): associated header. Default is None (create a new header).
            **kwds: nodata = a missing value sentinel to store in the header. Default is None (nans only).
        """
        self.data = data
        self.set_header(header)
        if 'nodata' in kwds:
            self.header.set_data_ignore_value(kwds['nodata'])

    def __getitem__(self, key):
        """
        Expose underlying data array when using [ ] operators
        """
        return self.data.__getitem__(key)

    def __setitem__(self, key, value):
        """
        Expose underlying data array when using [ ] operators
        """
        self.data.__setitem__(key, value)

    def copy(self, data=True):
        """
        Make a deep copy of this instance.

        Args:
            data (bool): True if a copy of the data should be made, otherwise only copy header.
        """
        if not data or self.data is None:
            return self.__class__(None, header=self.header.copy())
        return self.__class__(self.data.copy(), header=self.header.copy())

    def set_header(self, header):
        """
        Set the metadata of this dataset.

        Args:
            header (dict): a HyHeader, plain dictionary or None.
        """
        if header is None:
            self.header = HyHeader()
        elif isinstance(header, HyHeader):
            self.header = header
        else:
            self.header = HyHeader(header)

    def push_to_header(self):
        """
        Update header data to match this dataset.
        """
        self.header['samples'] = str(self.samples())
        self.header['bands'] = str(self.band_count())
        self.header['lines'] = str(self.lines())

    def get_nodata(self):
        """
        Return the missing value sentinel (or None if only nans are treated as missing).
        """
        return self.header.get_data_ignore_value()

    def is_image(self):
        """
        Return true if this dataset is an image (i.e. data array has dimension [x,y,b]).
        """
        if self.data is None:
            return False
        return len(self.data.shape) == 3

    def is_point(self):
        """
        Return true if this dataset is a pixel table (i.e. data array has dimension [idx,b]).
        """
        if self.data is None:
            return True
        return len(self.data.shape) == 2

    def band_count(self):
        """
        Return the number of bands in this dataset.
        """
        if self.data is None: return 0
        return self.data.shape[-1]

    def samples(self):
        """
        Return number of samples in this dataset (image width or number of pixels in a table).
        """
        if self.data is None:
            return 0
        return self.data.shape[0]

    def lines(self):
        """
        Return number of lines in this dataset. For pixel tables this is 1.
        """
        if self.data is None:
            return 0
        if len(self.data.shape) > 2:
            return self.data.shape[1]
        return 1

    def get_raveled(self):
        """
        Get the data array as a 2D array of pixels. NOTE: this is a view of the original data array where possible.

        Returns:
            pixels (ndarray): an array such that pixel[n][band] gives the spectra of the nth pixel.
        """
        return self.data.reshape(-1, self.data.shape[-1])

    def X(self, onlyFinite = False):
        """
        A shorthand way of writing get_raveled(), as X is conventionally used for a vector of spectra.

        Args:
            onlyFinite (bool): True if pixels with a missing band should be removed. Default is False.
        """
        X = self.get_raveled()
        if onlyFinite:
            return X[ self.valid_mask().ravel() ]
        return X

    def valid_mask(self):
        """
        Return a boolean array (of the spatial shape of this dataset) that is True where every band is present.
        """
        return valid_pixels(self.data, self.get_nodata())

def valid_pixels(data, nodata=None):
    """
    Compute the "all bands present" predicate for a band-last array.

    Args:
        data (ndarray): array with bands in the last axis.
        nodata (float): missing value sentinel, or None if only nans (and infs) are missing.
    Returns:
        a boolean array with the shape of data minus its last axis.
    """
    if np.issubdtype(data.dtype, np.floating):
        valid = np.isfinite(data)
    else:
        valid = np.ones(data.shape, dtype=bool)
    if nodata is not None and np.isfinite(nodata):
        valid &= data != nodata
    return valid.all(axis=-1)
