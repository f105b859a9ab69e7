#!/usr/bin/env python3
"""
Setup configuration for the graphcache package
"""

from setuptools import setup, find_packages
import os
import re


def get_version():
    """Extract version from __init__.py"""
    init_py = os.path.join('graphcache', '__init__.py')
    with open(init_py, 'r', encoding='utf-8') as f:
        version_match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]", f.read(), re.M)
        if version_match:
            return version_match.group(1)
    raise RuntimeError("Unable to find version string.")


def get_long_description():
    """Get long description from README"""
    with open('README.md', encoding='utf-8') as f:
        return f.read()


def get_requirements():
    """Get requirements from requirements.txt"""
    with open('requirements.txt', encoding='utf-8') as f:
        return [line.strip() for line in f if line.strip() and not line.startswith('#')]


setup(
    name="graphcache",
    version=get_version(),
    description="Load inference graphs from remote or cached locations",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"graphcache.models": ["models.json"]},
    include_package_data=True,
    install_requires=get_requirements(),
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
    ],
    keywords="machine learning, model loading, model cache, graph model",
)
