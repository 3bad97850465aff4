#  -*- coding: utf-8 -*-
"""
Setuptools script for the UPnPDevice project.
"""

import os
from textwrap import fill, dedent

from setuptools import setup, find_packages


def required(fname):
    with open(os.path.join(os.path.dirname(__file__), fname)) as req_f:
        return [line for line in req_f.read().split("\n") if line.strip()]


setup(
    name="UPnPDevice",
    version="0.1.0",
    packages=find_packages(
        exclude=[
            "*.tests",
            "*.tests.*",
            "tests.*",
            "tests",
            "*.examples",
            "*.examples.*",
            "examples.*",
            "examples"
        ]
    ),
    scripts=[],
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=required("requirements.txt"),
    extras_require={
        "test": ["pytest", "mock"],
    },
    zip_safe=False,
    description=fill(dedent("""\
        Asynchronous UPnP control point: device and service descriptions,
        SOAP action calls and GENA event subscriptions.
    """)),
    classifiers=[
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Framework :: AsyncIO",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Natural Language :: English",
        "Operating System :: OS Independent",
        "Topic :: Communications",
        "Topic :: Home Automation",
        "Topic :: System :: Networking"
    ],
    license="MIT",
    keywords="upnp dlna gena soap mediarenderer"
)
