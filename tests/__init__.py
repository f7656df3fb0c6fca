import numpy as np
from hyreduce import HyImage, HyData

# functions for creating test datasets
def genSources( dimx, dimy ):
    """
    Three spatially smooth signals of shape (dimx, dimy, 3).
    """
    x, y = np.meshgrid(np.linspace(0, 1, dimx), np.linspace(0, 1, dimy), indexing='ij')
    return np.dstack([np.sin(3 * x) + np.cos(2 * y),
                      x * y,
                      np.exp(-((x - 0.5) ** 2 + (y - 0.3) ** 2) / 0.05)])

def genArray( dimx=60, dimy=40, nbands=10, noise=0.01, seed=42 ):
    """
    A (dimx, dimy, nbands) float32 array of smooth, correlated signal plus white noise.
    """
    rng = np.random.default_rng(seed)
    mix = 0.2 + rng.random((3, nbands))
    data = genSources(dimx, dimy) @ mix + 1.0
    data += noise * rng.standard_normal(data.shape)
    return data.astype(np.float32)

def genImage( dimx=60, dimy=40, nbands=10, noise=0.01, seed=42 ):
    image = HyImage( genArray(dimx, dimy, nbands, noise, seed) )
    image.header.set_wavelengths( np.linspace(500.0, 1000.0, nbands) )
    image.header['map info'] = ['UTM', 1, 1, 500000.0, 4000000.0, 1.0, 1.0]
    image.push_to_header()
    return image

def genTable( npixels=2000, nbands=10, seed=42 ):
    data = genArray(npixels, 1, nbands, seed=seed)[:, 0, :]
    return HyData( data )

def genCorrelated( npixels=5000, seed=0 ):
    """
    A three band pixel table where band 3 = 2 * band 1 + small noise and band 2 is weak noise.
    """
    rng = np.random.default_rng(seed)
    b1 = rng.standard_normal(npixels)
    b2 = 0.1 * rng.standard_normal(npixels)
    b3 = 2 * b1 + 0.05 * rng.standard_normal(npixels)
    return np.stack([b1, b2, b3], axis=-1)
