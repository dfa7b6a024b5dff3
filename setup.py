from setuptools import setup, find_packages

setup(
    name="tsla-retrieval",
    version="0.8.1",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["main"],
    install_requires=[
        "xarray",
        "netCDF4",
        "rasterio",
        "affine<3",
        "shapely>=2.0",
        "pyproj",
        "numpy",
        "tqdm",
        "python-dotenv"
    ],
    extras_require={
        "test": ["pytest"]
    }
)
