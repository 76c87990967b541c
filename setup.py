from setuptools import setup

with open("README.md") as f:
    long_description = f.read()

setup(
    name="RNAcanon",
    version="0.1.0",
    packages=["rnacanon"],
    package_dir={"": "src"},
    description="Validation and canonicalization of RNA secondary structures",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
    ],
    entry_points={
        "console_scripts": [
            "canonicalizer=rnacanon.canonicalizer:main",
        ]
    },
    install_requires=[
        "orjson",
        "pulp",
    ],
    extras_require={
        "test": [
            "hypothesis",
            "pytest",
        ]
    },
)
