"""
Fit and apply linear spectral rotations (PCA and MNF) to rasters.

The functional API is `fit(...)` (or `fit_pca(...)` and `fit_mnf(...)`), which returns an immutable model, and
`forward(...)` / `inverse(...)` which apply it. Scikit-learn compatible wrappers (`PCA`, `MNF` and `NoiseWhitener`)
are also provided for use in pipelines.
"""

import scipy.linalg
from sklearn.base import BaseEstimator, TransformerMixin

from hyreduce.errors import InvalidArgument
from .stats import estimate_stats, check_mode
from .noise import estimate_noise
from .eigen import eigen, whitening_matrix, whiten
from .model import TransformModel, PCAModel, MNFModel, from_dict
from .pca import fit_pca
from .mnf import fit_mnf, check_noise_cov
from .project import forward, inverse

def fit( data, method='pca', **kwds ):
    """
    Fit a PCA or MNF transform to a raster.

    Args:
        data: the raster to fit the transform to.
        method: 'pca' or 'mnf'. Default is 'pca'.
        **kwds: keywords are passed to fit_pca( ... ) or fit_mnf( ... ).
    Returns:
        a PCAModel or MNFModel.
    """
    m = method.lower() if isinstance(method, str) else None
    if m == 'pca':
        return fit_pca(data, **kwds)
    elif m == 'mnf':
        return fit_mnf(data, **kwds)
    raise InvalidArgument("method must be 'pca' or 'mnf', not %s." % (method,))

class NoiseWhitener(BaseEstimator, TransformerMixin):
    """
    A scikit-learn compatible transformer that estimates band noise from spatial neighbour differences and whitens
    it, as used for Minimum Noise Fraction (MNF) transforms.
    """

    def __init__(self, noise_cov=None, smooth=False, axis=None, seed=None):
        """
        Args:
            noise_cov: Optional precomputed (b, b) noise covariance. If None, noise is estimated when fitting.
            smooth: True if a small dither should be added to noise differences so that constant bands do not
                    give zero noise variance. Default is False.
            axis: the spatial axis to difference along. Default is None (vertical neighbours).
            seed: seed for the dither. Default is None.
        """
        self.noise_cov = noise_cov
        self.smooth = smooth
        self.axis = axis
        self.seed = seed

    def fit(self, X, y=None):
        """
        Estimate the noise covariance (unless one was given) and the whitening matrix.
        """
        if self.noise_cov is None:
            self.noise_cov_ = estimate_noise(X, smooth=self.smooth, axis=self.axis, seed=self.seed)
        else:
            self.noise_cov_ = check_noise_cov(self.noise_cov)
        self.Wn_ = whitening_matrix(self.noise_cov_)
        return self

    def transform(self, X):
        """Apply whitening to given numpy array."""
        shape = X.shape
        X_flat = X.reshape(-1, shape[-1])
        return (X_flat @ self.Wn_).reshape(shape)

    def inverse_transform(self, X_white):
        """Inverse noise whitening."""
        shape = X_white.shape
        X_flat = X_white.reshape(-1, shape[-1])
        return (X_flat @ scipy.linalg.inv(self.Wn_)).reshape(shape)

class MNF(BaseEstimator, TransformerMixin):
    """
    A scikit-learn compatible wrapper around fit_mnf(...), forward(...) and inverse(...) that works with either
    HyData instances or numpy arrays.
    """

    def __init__(self, n_components=None, fraction=1.0, smooth=False, seed=None, noise=None):
        """
        Args:
            n_components: number of components kept by transform(...). If None, all components are kept.
            fraction: fraction of valid pixels used to estimate the data covariance. Default is 1.0.
            smooth: True if a dither should be added when estimating noise. Default is False.
            seed: seed for pixel sampling and dithering. Default is None.
            noise: Optional NoiseWhitener instance. If it is not fitted yet, it will be fitted on the data passed
                   to fit(...). If None, noise is estimated from the data.
        """
        self.n_components = n_components
        self.fraction = fraction
        self.smooth = smooth
        self.seed = seed
        self.noise = noise

    def fit(self, X, y=None):
        """Fit the MNF transform, storing the result in self.model_."""
        noise_cov = None
        if self.noise is not None:
            if not hasattr(self.noise, 'noise_cov_'):
                self.noise.fit(X)
            noise_cov = self.noise.noise_cov_
        self.model_ = fit_mnf(X, noise_cov=noise_cov, smooth=self.smooth, fraction=self.fraction, seed=self.seed)
        return self

    def transform(self, X):
        """Project into component space, returning a HyData instance or numpy array matching X."""
        return forward(self.model_, X, self.n_components)

    def inverse_transform(self, Xt):
        """Map components back into band space, returning a HyData instance or numpy array matching Xt."""
        return inverse(self.model_, Xt)

class PCA( MNF ):
    """
    A scikit-learn compatible wrapper for PCA transforms. This uses the MNF class above, but fits with fit_pca(...).
    """

    def __init__(self, n_components=None, mode='cov', fraction=1.0, seed=None):
        """
        Args:
            n_components: number of components kept by transform(...). If None, all components are kept.
            mode: 'cov' or 'cor', the scatter matrix to rotate by. Default is 'cov'.
            fraction: fraction of valid pixels used to estimate statistics. Default is 1.0.
            seed: seed for pixel sampling. Default is None.
        """
        self.n_components = n_components
        self.mode = mode
        self.fraction = fraction
        self.seed = seed

    def fit(self, X, y=None):
        """Fit the PCA transform, storing the result in self.model_."""
        self.model_ = fit_pca(X, mode=self.mode, fraction=self.fraction, seed=self.seed)
        return self
