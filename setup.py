"""
Setup script for xarray-ocl
"""

from pathlib import Path

from setuptools import find_packages, setup

# Read the README file
readme_file = Path(__file__).parent / "README.md"
if readme_file.exists():
    long_description = readme_file.read_text(encoding="utf-8")
else:
    long_description = "An xarray backend and filter tools for NODC Ocean Climate Laboratory files"

setup(
    name="xarray-ocl",
    version="0.1",
    description="xarray backend and filter tools for NODC/OCL WOD98 station files",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Oceanography",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.13",
        "Programming Language :: Python :: 3.14",
    ],
    python_requires=">=3.11",
    install_requires=[
        "numpy>=1.20",
        "xarray>=2022.3.0",
        "lz4>=3.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov",
            "ruff>=0.8.0",
            "mypy>=1.13",
            "netCDF4",
        ],
    },
    entry_points={
        "console_scripts": [
            "xocl=xarray_ocl.cli.main:main",
            "oclfilt=xarray_ocl.cli.filt:main",
            "ocl2nc=xarray_ocl.cli.ocl2nc:main",
        ],
        "xarray.backends": [
            "ocl=xarray_ocl.backend:OCLBackendEntrypoint",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
