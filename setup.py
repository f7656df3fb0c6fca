import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="hyreduce",
    version="0.1",
    author="Helmholtz Institute Freiberg",
    author_email="s.thiele@hzdr.de",
    description="Spectral dimensionality reduction (PCA and MNF) for multi-band rasters.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(exclude=['tests', 'tests.*']),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Programming Language :: Python :: 3",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Topic :: Scientific/Engineering"
    ],
    keywords='hyperspectral multispectral remote sensing pca mnf noise dimensionality reduction',
    python_requires='>=3.8',
    install_requires=["scipy>=1.4", "matplotlib>=3", "numpy>=1.17",
                      "tqdm", "spectral", "scikit-learn"],
    extras_require={
        'test': ["pytest"],
    },
)
