"""
Setup script so `quickhttp` can be installed / recognized as a package.
"""

from setuptools import setup, find_packages

setup(
    name="quickhttp",
    version="0.9.0",
    description="Input, content-negotiation and upload helpers on top of Werkzeug",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "Werkzeug>=3.0",
        "python-dateutil>=2.8",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
)
