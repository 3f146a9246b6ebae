#!/usr/bin/env python

import os
import re

from setuptools import setup, find_packages


def find_version():
    with open(os.path.join("src", "hodlr", "__init__.py")) as f:
        match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]", f.read(),
                          re.M)
    if match:
        return match.group(1)
    raise RuntimeError("Unable to find __version__ string.")


if __name__ == "__main__":
    setup(
        name="hodlr",
        version=find_version(),
        license="MIT",
        packages=find_packages(where="src"),
        package_dir={"": "src"},
        description="A fast direct solver for hierarchical off-diagonal "
                    "low-rank matrices.",
        long_description=open("README.rst").read(),
        package_data={"": ["README.rst"]},
        install_requires=["numpy", "scipy"],
        extras_require={"test": ["pytest"]},
        python_requires=">=3.7",
        include_package_data=True,
        classifiers=[
            "Development Status :: 4 - Beta",
            "Intended Audience :: Developers",
            "Intended Audience :: Science/Research",
            "License :: OSI Approved :: MIT License",
            "Operating System :: OS Independent",
            "Programming Language :: Python",
            "Programming Language :: Python :: 3",
        ],
        zip_safe=True,
    )
