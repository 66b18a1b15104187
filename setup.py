"""Setup script for cbdb-network-lib."""

from setuptools import find_packages, setup

setup(
    name="cbdb-network-lib",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.10",
    install_requires=[
        "kuzu>=0.3.0",
        "networkx>=3.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
)
