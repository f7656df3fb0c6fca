"""
Fitted PCA and MNF transforms. Models are immutable once created and can be shared between threads and reused to
transform other scenes with the same bands.
"""

import numpy as np
import scipy.linalg
import matplotlib.pyplot as plt

from hyreduce.errors import InvalidArgument, DegenerateInput

def _frozen( a ):
    """
    Return a read-only float64 copy of a.
    """
    a = np.array(a, dtype=np.float64, copy=True)
    a.flags.writeable = False
    return a

def _normalised_cumsum( v ):
    s = np.cumsum(v)
    if s[-1] <= 0:
        return np.zeros_like(s)
    return s / s[-1]

def _fmt( v, n=10 ):
    s = [str(x) for x in np.round(v, 4)]
    if len(s) > n:
        s = s[:n - 1] + ['...', s[-1]]
    return '  '.join(s)

class TransformModel(object):
    """
    Base class for fitted linear spectral rotations. Pixels x (in band space) map to components y such that
    y = ((x - mean) / scale) @ projection, and back using x = (y @ inverse_projection) * scale + mean.
    """

    method = None

    def __init__(self, mean, projection, eigenvalues, scale=None, inverse_projection=None, wavelengths=None,
                 band_names=None):
        self._mean = _frozen(mean)
        self._projection = _frozen(projection)
        self._eigenvalues = _frozen(eigenvalues)
        b = self._mean.shape[0]
        assert self._projection.shape == (b, b), "Error - projection must be (%d, %d), not %s." % (b, b, self._projection.shape)
        assert self._eigenvalues.shape == (b,), "Error - there must be one eigenvalue per band."
        self._scale = _frozen(np.ones(b) if scale is None else scale)
        if inverse_projection is None:
            inverse_projection = self._invert(self._projection)
        self._inverse = _frozen(inverse_projection)

        # band metadata of the fitted data, restored by inverse transforms
        self._wavelengths = None
        if wavelengths is not None:
            self._wavelengths = _frozen(wavelengths)
            assert self._wavelengths.shape == (b,), "Error - there must be one wavelength per band."
        self._band_names = None
        if band_names is not None:
            self._band_names = tuple(str(n) for n in band_names)
            assert len(self._band_names) == b, "Error - there must be one band name per band."

    def _invert(self, P):
        try:
            return scipy.linalg.inv(P)
        except (np.linalg.LinAlgError, ValueError) as e:
            raise DegenerateInput("Projection matrix is singular and cannot be inverted (%s)." % e)

    @property
    def mean(self):
        """The per-band mean subtracted before projection."""
        return self._mean

    @property
    def scale(self):
        """The per-band scale each band is divided by after centering (ones unless fitted on a correlation matrix)."""
        return self._scale

    @property
    def projection(self):
        """The (b, b) projection matrix; column i holds the band weights of component i."""
        return self._projection

    @property
    def inverse_projection(self):
        """The (b, b) matrix mapping components back to band space; row i belongs to component i."""
        return self._inverse

    @property
    def eigenvalues(self):
        """Eigenvalues associated with each component, in descending order."""
        return self._eigenvalues

    @property
    def cumulative_eigenvalues(self):
        """Running total of the eigenvalues, normalised to end at 1."""
        return _normalised_cumsum(np.clip(self._eigenvalues, 0, None))

    def band_count(self):
        """
        Return the number of bands this transform was fitted on.
        """
        return self._mean.shape[0]

    @property
    def wavelengths(self):
        """Wavelengths of the bands this transform was fitted on, or None if they were not known."""
        return self._wavelengths

    @property
    def band_names(self):
        """Names of the bands this transform was fitted on, or None if they were not known."""
        return self._band_names

    def statistics(self):
        """
        Return a dictionary of the per-component statistics of this transform.
        """
        return {'eigenvalues': self.eigenvalues, 'cumulative eigenvalues': self.cumulative_eigenvalues}

    def to_dict(self):
        """
        Store this transform as a dictionary of plain numpy arrays (e.g. for use with numpy.savez).
        """
        out = dict(method=np.array(self.method), mean=np.array(self._mean), scale=np.array(self._scale),
                   projection=np.array(self._projection), eigenvalues=np.array(self._eigenvalues),
                   inverse_projection=np.array(self._inverse))
        if self._wavelengths is not None:
            out['wavelengths'] = np.array(self._wavelengths)
        if self._band_names is not None:
            out['band_names'] = np.array(self._band_names)
        return out

    def summary(self, n=10):
        """
        Return a text summary of the projection matrix and component statistics.
        """
        with np.printoptions(precision=4, suppress=True, threshold=100, edgeitems=4):
            P = str(self._projection)
        lines = ["%s(dimensions=%d)" % (self.method.upper(), self.band_count()), "",
                 "Projection Matrix:", P, "", "Component Statistics:"]
        for k, v in self.statistics().items():
            lines.append("  %s: %s" % (k.capitalize(), _fmt(v, n)))
        return "\n".join(lines)

    def __repr__(self):
        return self.summary()

    def quick_plot(self, stat=None, ax=None, **kwds):
        """
        Plot one of the per-component statistics of this transform.

        Args:
            stat: the name of the statistic to plot (a key of statistics()). Default is the last (cumulative) one.
            ax: a matplotlib axes to plot on. If None (default) a new figure is created.
            **kwds: keywords are passed to ax.plot( ... ).
        Returns:
            fig, ax = the figure and axes.
        """
        stats = self.statistics()
        if stat is None:
            stat = list(stats.keys())[-1]
        assert stat in stats, "Error - unknown statistic %s. Options are %s." % (stat, list(stats.keys()))
        if ax is None:
            fig, ax = plt.subplots(1, 1, figsize=(10, 5))
        y = stats[stat]
        ax.plot(np.arange(1, len(y) + 1), y, **kwds)
        ax.set_xlabel('Component')
        ax.set_ylabel(stat.capitalize())
        return ax.get_figure(), ax

class PCAModel(TransformModel):
    """
    A fitted Principal Component Analysis. Components are orthonormal, so the inverse projection is the transpose.
    """

    method = 'pca'

    def __init__(self, mean, projection, eigenvalues, scale=None, mode='cov', inverse_projection=None,
                 wavelengths=None, band_names=None):
        if inverse_projection is None:
            inverse_projection = np.asarray(projection).T
        super().__init__(mean, projection, eigenvalues, scale=scale, inverse_projection=inverse_projection,
                         wavelengths=wavelengths, band_names=band_names)
        self._mode = str(mode)
        lam = np.clip(self._eigenvalues, 0, None)
        if not lam.sum() > 0:
            raise DegenerateInput("Data has zero total variance, so components cannot be ranked.")
        self._explained = _frozen(lam / lam.sum())
        self._cumulative = _frozen(_normalised_cumsum(lam))

    @property
    def mode(self):
        """The scatter matrix the PCA was computed from ('cov' or 'cor')."""
        return self._mode

    @property
    def explained_variance(self):
        """The fraction of the total variance explained by each component."""
        return self._explained

    @property
    def cumulative_variance(self):
        """The fraction of the total variance explained by the first n components."""
        return self._cumulative

    def statistics(self):
        return {'explained variance': self.explained_variance, 'cumulative variance': self.cumulative_variance}

    def to_dict(self):
        out = super().to_dict()
        out['mode'] = np.array(self._mode)
        return out

class MNFModel(TransformModel):
    """
    A fitted Minimum Noise Fraction transform. The projection is the product of a noise-whitening rotation and a
    PCA rotation in whitened space, so it is not orthonormal and is inverted explicitly.
    """

    method = 'mnf'

    def __init__(self, mean, projection, eigenvalues, noise_cov, data_cov, inverse_projection=None,
                 wavelengths=None, band_names=None):
        super().__init__(mean, projection, eigenvalues, inverse_projection=inverse_projection,
                         wavelengths=wavelengths, band_names=band_names)
        self._noise_cov = _frozen(noise_cov)
        self._data_cov = _frozen(data_cov)

        P = self._projection
        signal = ((self._data_cov @ P) * P).sum(axis=0)
        noise = ((self._noise_cov @ P) * P).sum(axis=0)
        self._snr = _frozen(signal / noise - 1)

    @property
    def noise_cov(self):
        """The noise covariance matrix used to whiten the data."""
        return self._noise_cov

    @property
    def data_cov(self):
        """The covariance matrix of the (unwhitened) data."""
        return self._data_cov

    @property
    def snr(self):
        """The estimated signal-to-noise ratio of each component, P_i' S P_i / P_i' N P_i - 1."""
        return self._snr

    @property
    def cumulative_snr(self):
        """Running total of the (non-negative part of the) SNR, normalised to end at 1."""
        return _normalised_cumsum(np.clip(self._snr, 0, None))

    def statistics(self):
        return {'eigenvalues': self.eigenvalues, 'cumulative eigenvalues': self.cumulative_eigenvalues,
                'explained snr': self.snr, 'cumulative snr': self.cumulative_snr}

    def to_dict(self):
        out = super().to_dict()
        out['noise_cov'] = np.array(self._noise_cov)
        out['data_cov'] = np.array(self._data_cov)
        return out

def from_dict( d ):
    """
    Rebuild a transform stored using TransformModel.to_dict( ... ). Any mapping of arrays (e.g. the object returned
    by numpy.load on an .npz file) can be passed.
    """
    method = str(np.asarray(d['method']))
    inv = d['inverse_projection'] if 'inverse_projection' in d else None
    wav = d['wavelengths'] if 'wavelengths' in d else None
    names = list(d['band_names']) if 'band_names' in d else None
    if method == 'pca':
        return PCAModel(d['mean'], d['projection'], d['eigenvalues'], scale=d['scale'],
                        mode=str(np.asarray(d['mode'])), inverse_projection=inv, wavelengths=wav, band_names=names)
    elif method == 'mnf':
        return MNFModel(d['mean'], d['projection'], d['eigenvalues'], d['noise_cov'], d['data_cov'],
                        inverse_projection=inv, wavelengths=wav, band_names=names)
    raise InvalidArgument("Unknown transform type %s." % method)
