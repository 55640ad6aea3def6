#!/usr/bin/env python3
########################################################################
# File name: setup.py
# This file is part of: wsxmpp
#
# LICENSE
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Lesser General Public License as
# published by the Free Software Foundation, either version 3 of the
# License, or (at your option) any later version.
#
# This program is distributed in the hope that it will be useful, but
# WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
# General Public License for more details.
#
# You should have received a copy of the GNU Lesser General Public
# License along with this program.  If not, see
# <http://www.gnu.org/licenses/>.
#
########################################################################
import os.path
import runpy

from setuptools import setup, find_packages

here = os.path.abspath(os.path.dirname(__file__))

with open(os.path.join(here, "README.rst"), encoding="utf-8") as f:
    long_description = f.read()

version_mod = runpy.run_path(os.path.join(here, "wsxmpp/_version.py"))

install_requires = [
    'aiosasl>=0.3',  # need 0.2+ for LGPLv3
    'aiohttp>=3.0',
    'lxml>=4.0',
]

setup(
    name="wsxmpp",
    version=version_mod["__version__"].replace("-", ""),
    description="XMPP over WebSocket client stream negotiation for asyncio",
    long_description=long_description,
    url="https://github.com/wsxmpp/wsxmpp",
    author="wsxmpp contributors",
    license="LGPLv3+",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Operating System :: POSIX",
        "License :: OSI Approved :: GNU Lesser General Public License v3 or later (LGPLv3+)",
        "Programming Language :: Python :: 3 :: Only",
        "Topic :: Communications :: Chat",
        "Topic :: Internet :: XMPP",
    ],
    keywords="asyncio xmpp websocket library",
    python_requires=">=3.7",
    install_requires=install_requires,
    extras_require={
        "test": ["pytest"],
    },
    packages=find_packages(exclude=["tests*", "examples*"])
)
