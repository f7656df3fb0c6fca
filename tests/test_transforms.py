import io
import os
import tempfile
import unittest
import numpy as np

from hyreduce import HyData, HyImage, InvalidArgument, DimensionMismatch, DegenerateInput
from hyreduce.transform import fit, fit_pca, fit_mnf, forward, inverse, estimate_noise, from_dict
from hyreduce.transform import PCAModel, MNFModel, PCA, MNF, NoiseWhitener
from tests import genImage, genArray, genTable, genCorrelated

class TestPCA(unittest.TestCase):
    def test_fit(self):
        image = genImage()
        for f in [0.01, 0.1, 0.5, 1.0]:
            for mode in ['cov', 'cor']:
                pca = fit_pca(image, mode=mode, fraction=f, seed=1)
                self.assertIsInstance(pca, PCAModel)
                self.assertEqual(pca.band_count(), image.band_count())
                self.assertEqual(pca.projection.shape, (10, 10))

                cv = pca.cumulative_variance
                self.assertTrue((np.diff(cv) >= 0).all())
                self.assertAlmostEqual(cv[-1], 1.0, delta=1e-6)

                ev = pca.explained_variance
                self.assertTrue((ev >= 0).all())
                self.assertAlmostEqual(np.sum(ev), 1.0, delta=1e-6)
                self.assertTrue((np.diff(ev) <= 0).all())

                # components are orthonormal
                self.assertTrue(np.allclose(pca.projection.T @ pca.projection, np.eye(10)))
                self.assertTrue(np.allclose(pca.inverse_projection, pca.projection.T))

        # correlation based PCA stores the band standard deviations
        pca = fit_pca(image, mode='cor')
        self.assertTrue(np.allclose(pca.scale, image.X().astype(np.float64).std(axis=0, ddof=1)))
        self.assertTrue(np.allclose(fit_pca(image).scale, 1.0))

    def test_errors(self):
        image = genImage(20, 10, nbands=5)
        for f in [0, 1.5]:
            with self.assertRaises(InvalidArgument):
                fit_pca(image, fraction=f)
        with self.assertRaises(InvalidArgument):
            fit_pca(image, mode='svd')
        with self.assertRaises(InvalidArgument):
            fit(image, method='ica')
        with self.assertRaises(DegenerateInput):
            fit_pca(np.full((10, 10, 3), 2.0)) # no variance to rank components by

        pca = fit_pca(image)
        for k in [0, 6, -1, 2.5, True]:
            with self.assertRaises(InvalidArgument):
                forward(pca, image, k)
        with self.assertRaises(DimensionMismatch):
            forward(pca, genImage(20, 10, nbands=6))
        with self.assertRaises(InvalidArgument):
            inverse(pca, np.zeros((20, 10, 6)))

    def test_correlated_bands(self):
        X = genCorrelated()
        pca = fit_pca(X, mode='cov', fraction=1.0)
        self.assertGreater(pca.explained_variance[0], 0.9)
        v = pca.projection[:, 0]
        self.assertGreater(abs(v[0]), 0.1)
        self.assertGreater(abs(v[2]), 0.1)
        self.assertLess(abs(v[1]), 0.1)
        self.assertAlmostEqual(v[2] / v[0], 2.0, delta=0.05)

    def test_round_trip(self):
        image = genImage()
        image.data[0, 0, 3] = np.nan # ensure there are at least some nans
        pca = fit_pca(image, fraction=0.5, seed=3)
        for X in [image, image.data, image.X(), genTable()]:
            Xt = forward(pca, X, 10)
            Xtt = inverse(pca, Xt)
            self.assertTrue(isinstance(Xt, type(X)))
            self.assertTrue(isinstance(Xtt, type(X)))

            a = X.data if isinstance(X, HyData) else X
            b = Xtt.data if isinstance(Xtt, HyData) else Xtt
            self.assertEqual(a.shape, b.shape)
            self.assertLess(np.nanmax(np.abs(a - b)), 0.05)
            self.assertTrue(np.array_equal(np.isnan(a).any(axis=-1), np.isnan(b).all(axis=-1)))

        # with double precision output the round trip is exact to rounding error
        Xtt = inverse(pca, forward(pca, image.data, dtype=np.float64), dtype=np.float64)
        self.assertLess(np.nanmax(np.abs(image.data - Xtt)), 1e-4)

        # correlation mode
        pca = fit_pca(image, mode='cor')
        Xtt = inverse(pca, forward(pca, image.data, dtype=np.float64), dtype=np.float64)
        self.assertLess(np.nanmax(np.abs(image.data - Xtt)), 1e-4)

    def test_truncation(self):
        X = genImage(nbands=12, noise=0.05).data
        pca = fit_pca(X)
        errors = []
        for k in range(1, 13):
            Xt = forward(pca, X, k, dtype=np.float64)
            self.assertEqual(Xt.shape, X.shape[:-1] + (k,))
            Xtt = inverse(pca, Xt, dtype=np.float64)
            self.assertEqual(Xtt.shape, X.shape)
            errors.append(np.linalg.norm((X - Xtt).ravel()))
        self.assertTrue((np.diff(errors) <= 1e-9).all())
        self.assertLess(errors[-1], 1e-3)
        self.assertLess(errors[2], errors[0]) # three sources, so three components capture most of the signal

    def test_missing(self):
        data = genArray(30, 20, nbands=8)
        data[0, 0, 3] = np.nan
        data[4, 5, 7] = np.inf
        data[10, :, 0] = np.nan
        pca = fit_pca(data)
        Xt = forward(pca, data, 4)
        missing = ~np.isfinite(data).all(axis=-1)
        self.assertTrue(np.isnan(Xt[missing]).all())
        self.assertTrue(np.isfinite(Xt[~missing]).all())

        # sentinel values in and out
        data = genArray(30, 20, nbands=8)
        data[2, 3, 1] = -9999.
        Xt = forward(pca, data, 3, fill=-1e9, nodata=-9999.)
        self.assertTrue((Xt[2, 3, :] == -1e9).all())
        self.assertEqual((Xt == -1e9).sum(), 3)
        Xtt = inverse(pca, Xt, nodata=-1e9, fill=-9999.)
        self.assertTrue((Xtt[2, 3, :] == -9999.).all())

        # integer outputs need an integer fill value
        for f in [np.nan, 0.5, 40000, 'none']:
            with self.assertRaises(InvalidArgument):
                forward(pca, data, 3, dtype=np.int16, fill=f, nodata=-9999.)
        with self.assertRaises(InvalidArgument):
            inverse(pca, Xt, dtype=np.uint8, nodata=-1e9)
        Xi = forward(pca, data, 3, dtype=np.int16, fill=-1, nodata=-9999.)
        self.assertEqual(Xi.dtype, np.int16)
        self.assertTrue((Xi[2, 3, :] == -1).all())

        # sentinel stored in a header is honoured and carried to the output
        image = HyImage(data, nodata=-9999.)
        Xt = forward(pca, image, 3, fill=-1.0)
        self.assertEqual(Xt.get_nodata(), -1.0)
        self.assertTrue((Xt.data[2, 3, :] == -1.0).all())
        Xtt = inverse(pca, Xt)
        self.assertTrue(np.isnan(Xtt.data[2, 3, :]).all())
        self.assertEqual(Xtt.get_nodata(), None)

    def test_metadata(self):
        image = genImage()
        names = ['B%d' % i for i in range(10)]
        image.header.set_band_names(names)
        pca = fit_pca(image)
        Xt = forward(pca, image, 4)
        self.assertIsInstance(Xt, HyImage)
        self.assertEqual(Xt.header.get_band_names(), ['PCA 1', 'PCA 2', 'PCA 3', 'PCA 4'])
        self.assertTrue(np.allclose(Xt.header.get_wavelengths(), pca.cumulative_variance[:4]))
        self.assertEqual(Xt.header['map info'], image.header['map info'])
        self.assertEqual(Xt.header['bands'], '4')
        Xtt = inverse(pca, Xt)
        self.assertEqual(Xtt.band_count(), 10)
        self.assertEqual(Xtt.header['map info'], image.header['map info'])

        # band metadata of the fitted data is restored in band space
        self.assertEqual(pca.band_names, tuple(names))
        self.assertTrue(np.allclose(pca.wavelengths, image.header.get_wavelengths()))
        self.assertEqual(Xtt.header.get_band_names(), names)
        self.assertTrue(np.allclose(Xtt.header.get_wavelengths(), image.header.get_wavelengths()))
        Xtt = inverse(fit_mnf(image), forward(fit_mnf(image), image, 3))
        self.assertEqual(Xtt.header.get_band_names(), names)

        # models fitted on plain arrays have no band metadata to restore
        pca = fit_pca(image.data)
        self.assertEqual(pca.wavelengths, None)
        self.assertEqual(pca.band_names, None)
        Xtt = inverse(pca, forward(pca, image, 4))
        self.assertFalse(Xtt.header.has_wavelengths())
        self.assertFalse(Xtt.header.has_band_names())

    def test_cross_scene(self):
        pca = fit_pca(genImage(seed=1))
        other = genImage(80, 50, seed=7)
        Xt = forward(pca, other, 3)
        self.assertEqual(Xt.data.shape, (80, 50, 3))
        Xtt = inverse(pca, forward(pca, other))
        self.assertLess(np.nanmax(np.abs(other.data - Xtt.data)), 0.05)

class TestMNF(unittest.TestCase):
    def test_fit(self):
        image = genImage()
        roi = HyImage(image.data[10:30, 5:25, :])
        mnf = fit_mnf(image, noise_sample=roi)
        self.assertIsInstance(mnf, MNFModel)
        self.assertEqual(mnf.projection.shape, (10, 10))
        self.assertEqual(mnf.noise_cov.shape, (10, 10))
        self.assertTrue(np.allclose(mnf.noise_cov, estimate_noise(roi)))

        # eigenvalues are sorted and the SNR follows from them (noise is whitened)
        self.assertTrue((np.diff(mnf.eigenvalues) <= 0).all())
        self.assertTrue(np.allclose(mnf.snr, mnf.eigenvalues - 1, rtol=1e-6, atol=1e-6))
        for c in [mnf.cumulative_eigenvalues, mnf.cumulative_snr]:
            self.assertTrue((np.diff(c) >= -1e-12).all())
            self.assertAlmostEqual(c[-1], 1.0, delta=1e-6)

        # the projection is not orthonormal, so it is inverted explicitly
        self.assertFalse(np.allclose(mnf.projection.T @ mnf.projection, np.eye(10)))
        self.assertTrue(np.allclose(mnf.inverse_projection @ mnf.projection, np.eye(10)))
        self.assertTrue(np.allclose(mnf.projection.T @ mnf.noise_cov @ mnf.projection, np.eye(10)))

        # precomputed noise gives the same transform
        mnf2 = fit_mnf(image, noise_cov=mnf.noise_cov)
        self.assertTrue(np.allclose(mnf.projection, mnf2.projection))
        self.assertIsInstance(fit(image, method='MNF', noise_sample=roi), MNFModel)

        for f in [0, 1.5]:
            with self.assertRaises(InvalidArgument):
                fit_mnf(image, fraction=f)
        with self.assertRaises(DimensionMismatch):
            fit_mnf(image, noise_cov=np.eye(4))

    def test_degenerate_noise(self):
        image = genImage(nbands=6)
        roi = np.full((10, 12, 6), 0.5, dtype=np.float32)
        with self.assertRaises(DegenerateInput):
            fit_mnf(image, noise_sample=roi, smooth=False)
        mnf = fit_mnf(image, noise_sample=roi, smooth=True, seed=4)
        self.assertTrue((np.diag(mnf.noise_cov) != 0).all())
        with self.assertRaises(DegenerateInput):
            fit_mnf(image, noise_cov=np.diag([1.0, 1.0, 0.0, 1.0, 1.0, 1.0]))
        N = np.eye(6)
        N[0, 1] = 0.5
        with self.assertRaises(DegenerateInput):
            fit_mnf(image, noise_cov=N)

        # noise region where one band is the sum of two others
        region = genArray(20, 15, nbands=3, noise=0.05, seed=3).astype(np.float64)
        region[..., 2] = region[..., 0] + region[..., 1]
        with self.assertRaises(DegenerateInput):
            fit_mnf(genImage(nbands=3), noise_sample=region)
        with self.assertRaises(DegenerateInput):
            NoiseWhitener().fit(region)

    def test_round_trip(self):
        image = genImage()
        image.data[0, 0, 3] = np.nan
        mnf = fit_mnf(image, fraction=0.5, seed=2)
        for X in [image, image.data, image.X()]:
            Xt = forward(mnf, X, 10)
            Xtt = inverse(mnf, Xt)
            self.assertTrue(isinstance(Xt, type(X)))
            a = X.data if isinstance(X, HyData) else X
            b = Xtt.data if isinstance(Xtt, HyData) else Xtt
            self.assertEqual(a.shape, b.shape)
            self.assertLess(np.nanmax(np.abs(a - b)), 0.05)
            self.assertTrue(np.isnan(b[..., :][np.isnan(a).any(axis=-1)]).all())

        # denoising: keep the high SNR components only
        Xt = forward(mnf, image, 3, dtype=np.float64)
        self.assertEqual(Xt.band_count(), 3)
        self.assertEqual(Xt.header.get_band_names()[0], 'MNF 1')
        denoised = inverse(mnf, Xt)
        self.assertEqual(denoised.data.shape, image.data.shape)
        self.assertLess(np.sqrt(np.nanmean((denoised.data - image.data) ** 2)), 0.02)

        # components are centered on the data mean
        mnf = fit_mnf(image)
        Xt = forward(mnf, image.X(onlyFinite=True), dtype=np.float64)
        self.assertTrue(np.allclose(Xt.mean(axis=0), 0, atol=1e-3 * np.abs(Xt).max()))

class TestModel(unittest.TestCase):
    def test_immutable(self):
        pca = fit_pca(genImage(20, 10, nbands=4))
        with self.assertRaises(ValueError):
            pca.projection[0, 0] = 1.0
        with self.assertRaises(ValueError):
            pca.mean[0] = 1.0
        with self.assertRaises(AttributeError):
            pca.projection = np.eye(4)

    def test_serialise(self):
        image = genImage(20, 10, nbands=4)
        for model in [fit_pca(image, mode='cor'), fit_mnf(image)]:
            d = model.to_dict()
            for v in d.values():
                self.assertIsInstance(v, np.ndarray)

            # round trip through an npz file
            buf = io.BytesIO()
            np.savez(buf, **d)
            buf.seek(0)
            model2 = from_dict(np.load(buf))
            self.assertIs(type(model2), type(model))
            self.assertTrue(np.array_equal(forward(model, image).data, forward(model2, image).data))
            for k, v in model.statistics().items():
                self.assertTrue(np.allclose(v, model2.statistics()[k]))
            self.assertEqual(model2.band_names, model.band_names)
            self.assertTrue(np.allclose(model2.wavelengths, model.wavelengths))

        with self.assertRaises(InvalidArgument):
            from_dict(dict(d, method=np.array('ica')))

    def test_summary(self):
        image = genImage(nbands=12)
        pca = fit_pca(image)
        s = repr(pca)
        self.assertIn('PCA(dimensions=12)', s)
        self.assertIn('Cumulative variance', s)
        self.assertIn('...', s)
        self.assertIn('Cumulative snr', repr(fit_mnf(image)))

        import matplotlib
        matplotlib.use('Agg')
        fig, ax = pca.quick_plot()
        self.assertEqual(len(ax.lines), 1)
        fig, ax = fit_mnf(image).quick_plot('explained snr', ax=ax)
        self.assertEqual(len(ax.lines), 2)

class TestSklearn(unittest.TestCase):
    def test_PCA_MNF(self):
        image = genImage()
        image.data[0, 0, 3] = np.nan # ensure there are at least some nans
        for X in [image, image.data, image.X()]:
            n = image.band_count()

            # test PCA
            pca = PCA(n_components=n, fraction=1).fit(X)
            self.assertEqual(pca.get_params()['mode'], 'cov')
            Xt = pca.transform(X)
            Xtt = pca.inverse_transform(Xt) # back-transform
            self.assertTrue(isinstance(Xt, type(X)))
            if isinstance(Xt, np.ndarray):
                self.assertTrue(Xt.shape[-1] == n)
                self.assertLess(np.nanmax(np.abs(X - Xtt)), 1e-3)
            else:
                self.assertTrue(Xt.data.shape[-1] == n)
                self.assertLess(np.nanmax(np.abs(X.data - Xtt.data)), 1e-3)

            # test MNF with a separately fitted noise model
            noise = NoiseWhitener().fit(image)
            W = noise.transform(image.X(onlyFinite=True))
            self.assertTrue(np.allclose(noise.inverse_transform(W), image.X(onlyFinite=True), atol=1e-4))
            mnf = MNF(n_components=3, noise=noise).fit(X)
            self.assertTrue(np.allclose(mnf.model_.noise_cov, noise.noise_cov_))
            Xt = mnf.transform(X)
            self.assertTrue(isinstance(Xt, type(X)))
            Xtt = mnf.inverse_transform(Xt)
            if isinstance(Xt, np.ndarray):
                self.assertEqual(Xt.shape[-1], 3)
                self.assertEqual(Xtt.shape, X.shape)
            else:
                self.assertEqual(Xt.band_count(), 3)
                self.assertEqual(Xtt.data.shape, X.data.shape)

            # fit_transform from TransformerMixin
            self.assertEqual(MNF(n_components=2).fit_transform(image.data).shape, image.data.shape[:-1] + (2,))

class TestSpectral(unittest.TestCase):
    def test_disk_backed(self):
        import spectral.io.envi as envi
        data = genArray(30, 20, nbands=9)
        with tempfile.TemporaryDirectory() as tmp:
            pth = os.path.join(tmp, 'image.hdr')
            envi.save_image(pth, data, dtype=np.float32, force=True, metadata={'map info': ['UTM', '1', '1'],
                                                                     'wavelength': [str(w) for w in range(500, 509)]})
            img = envi.open(pth)

            pca = fit_pca(img, batch=4)
            ref = fit_pca(data)
            self.assertTrue(np.allclose(pca.mean, ref.mean))
            self.assertTrue(np.allclose(pca.eigenvalues, ref.eigenvalues))
            self.assertTrue(np.allclose(pca.wavelengths, np.arange(500, 509)))
            self.assertEqual(ref.wavelengths, None)

            Xt = forward(ref, img, 5, batch=2)
            self.assertIsInstance(Xt, HyImage)
            self.assertEqual(Xt.data.shape, (30, 20, 5))
            self.assertIn('map info', Xt.header)
            self.assertEqual(Xt.header.get_band_names()[0], 'PCA 1')
            self.assertTrue(np.allclose(inverse(pca, Xt).header.get_wavelengths(), np.arange(500, 509)))
            self.assertTrue(np.allclose(Xt.data, forward(ref, data, 5), atol=1e-4))

            mnf = fit_mnf(img, batch=4)
            self.assertTrue(np.allclose(mnf.noise_cov, estimate_noise(data)))
            del img

if __name__ == '__main__':
    unittest.main()
