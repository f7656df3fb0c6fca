"""
Manage metadata associated with rasters and transformed datasets.
"""

import copy
import numpy as np

class HyHeader( dict ):
    """
    A dictionary of ENVI-style header keys. Only a handful of keys are interpreted by hyreduce (wavelengths,
    band names and the data ignore value); everything else (map info, coordinate system strings etc.) is carried
    through transforms untouched.
    """

    # keys that are lists but never relate to individual bands
    SPATIAL_KEYS = ['coordinate system string', 'map info', 'projection info', 'description', 'geo points']

    def __init__(self, *args, **kwds):
        super().__init__(*args, **kwds)

        #default values
        self.setdefault('file type', 'ENVI Standard')

    def has_band_names(self):
        """
        Return true if band names are defined
        """
        return 'band names' in self

    def has_wavelengths(self):
        """
        Return true if wavelengths are defined.
        """
        return 'wavelength' in self

    def band_count(self):
        """
        Return the number of bands specified in this header.
        """
        if self.has_wavelengths():
            return len(self.get_wavelengths())
        elif self.has_band_names():
            return len(self.get_band_names())
        elif 'bands' in self:
            return int(self['bands'])
        return 0 # no bands

    def get_band_names(self):
        """
        Get list of band names.
        """
        assert 'band names' in self, "Error - header has no band names."
        return list(self['band names'])

    def get_wavelengths(self):
        """
        Get array of band wavelengths.
        """
        assert 'wavelength' in self, "Error - header has no wavelength information."
        return np.array(self['wavelength'], dtype=float)

    def set_band_names(self, band_names):
        """
        Set list of band names.

        Args:
            band_names (list): a list of band names, or None to remove them.
        """
        if band_names is None:
            self.pop('band names', None)
        else:
            self['band names'] = [str(n) for n in band_names]

    def set_wavelengths(self, wavelengths):
        """
        Set list of band wavelengths.

        Args:
            wavelengths (list, ndarray): a list or numpy array of wavelengths, or None to remove them.
        """
        if wavelengths is None:
            self.pop('wavelength', None)
        else:
            assert isinstance(wavelengths, (list, tuple, np.ndarray)), "Error - wavelengths must be list, tuple or numpy array."
            self['wavelength'] = np.array(wavelengths, dtype=float)

    def get_data_ignore_value(self):
        """
        Return the missing-value sentinel of this dataset, or None if only nans are treated as missing.
        """
        if 'data ignore value' in self:
            return float(self['data ignore value'])
        return None

    def set_data_ignore_value(self, val):
        """
        Set (or with None, remove) the missing-value sentinel of this dataset.
        """
        if val is None or (isinstance(val, float) and np.isnan(val)):
            self.pop('data ignore value', None)
            return
        assert isinstance(val, (float, int, np.number)), "Error - %s is an invalid data type for data ignore values" % type(val)
        self['data ignore value'] = str(val)

    def drop_all_bands(self):
        """
        Remove all attributes that are specified per band. Used when a dataset is copied and its bands overwritten,
        as happens when projecting into component space.
        """
        nbands = self.band_count()
        if nbands == 0:
            return # no bands
        to_del = []
        for key, value in self.items():
            if key in self.SPATIAL_KEYS:
                continue
            if isinstance(value, (list, np.ndarray)) and len(value) == nbands:
                to_del.append(key)
        for k in to_del:
            del self[k]

        self['bands'] = str(0)

    def copy(self):
        """
        Make a deep copy of this header.
        """
        return copy.deepcopy(self)
