"""
An open-source python toolbox for spectral dimensionality reduction of multi-band raster imagery, implementing
Principal Component Analysis (PCA) and the Minimum Noise Fraction (MNF) transform.

-----------

### Quick start

```python
import hyreduce
from hyreduce.transform import fit_pca, fit_mnf, forward, inverse

pca = fit_pca( image, mode='cov', fraction=0.1 ) # fit on a 10% sample of valid pixels
reduced = forward( pca, image, 10 ) # keep the first 10 components
restored = inverse( pca, reduced ) # and map back to band space

mnf = fit_mnf( image, noise_sample=image.data[100:150, 200:260, :], smooth=True )
```

Fitted models are immutable and can be applied to other scenes with the same bands. Models can be stored as plain
arrays using `model.to_dict()` and restored with `hyreduce.transform.from_dict(...)`.

-----------

### References

* Green, A. A., Berman, M., Switzer, P., & Craig, M. D. (1988). A transformation for ordering multispectral data in
terms of image quality with implications for noise removal. *IEEE Transactions on Geoscience and Remote Sensing*,
26(1), 65-74.

* Switzer, P., & Green, A. A. (1984). Min/max autocorrelation factors for multivariate spatial imagery.
Technical Report 6, Department of Statistics, Stanford University.
"""

###########################################
## Runtime configuration
###########################################
band_batch_size = 25
"""Number of bands read at once when sampling or projecting wide (e.g. hyperspectral) rasters."""

smooth_epsilon = 1e-4
"""Magnitude of the two-valued (0 or epsilon) dither added to noise differences when smooth=True."""

tolerance = 1e-6
"""Relative tolerance used to check that noise covariance matrices are symmetric and not singular."""

#import basic data classes
from .errors import HyReduceError, InvalidArgument, DimensionMismatch, DegenerateInput
from .hyheader import HyHeader
from .hydata import HyData
from .hyimage import HyImage
