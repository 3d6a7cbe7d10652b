"""Setup script for the topology optimization core."""

from setuptools import setup, find_packages
from pathlib import Path

# Read README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text() if (this_directory / "README.md").exists() else ""

setup(
    name="topopt-core",
    version="0.3.0",
    description="Multigrid-compatible mesh setup, distributed design state and crash-safe restart for parallel topology optimization",
    long_description=long_description,
    long_description_content_type="text/markdown",

    packages=find_packages(where="src"),
    package_dir={"": "src"},

    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.21.0",
        "matplotlib>=3.5.0",
        "pyyaml>=6.0",
        "mpi4py>=3.1.4",
        "petsc4py>=3.19",
    ],

    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
            "isort>=5.12.0",
        ]
    },

    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Mathematics",
        "Topic :: Scientific/Engineering :: Physics",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Operating System :: OS Independent",
        "Natural Language :: English",
    ],

    keywords=[
        "topology-optimization", "finite-element", "multigrid", "mpi",
        "checkpoint", "restart", "high-performance-computing", "scientific-computing"
    ],

    entry_points={
        "console_scripts": [
            "topopt-setup=topopt.cli:main",
        ],
    },

    package_data={
        "topopt": ["config/*.yaml"],
    },

    include_package_data=True,
    zip_safe=False,
)
