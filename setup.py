"""
Setup script for the dynamic RSA accumulator package.
"""

from setuptools import setup, find_packages

with open("requirements-dev.txt", "r") as f:
    dev_requirements = [
        line.strip() for line in f if line.strip() and not line.startswith("#")
    ]

setup(
    name="dynacc",
    version="0.1.0",
    description="Dynamic RSA accumulator with witness maintenance for anonymous revocation",
    author="BTP Research Project",
    packages=find_packages(exclude=["dynacc.tests", "dynacc.tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "cryptography>=41.0",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "python-json-logger>=3.1",
    ],
    extras_require={
        "dev": dev_requirements,
        "test": dev_requirements,
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Security :: Cryptography",
    ],
)
