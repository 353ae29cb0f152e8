#!/usr/bin/env python3

import sys

from setuptools import find_packages, setup

if sys.version_info < (3, 6):
    sys.exit("Sorry, we need at least Python 3.6.")

setup(
    name="fc-rootfs",
    version="0.1",
    description="Build Firecracker root filesystem images from container images",
    license="LGPLv2+",

    packages=find_packages(exclude=["tests"]),
    scripts=[
        'bin/fc-rootfs',
    ],
    extras_require={
        'completion': ['argcomplete'],
        'test': ['pytest'],
    },
)
