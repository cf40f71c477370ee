# -*- coding: utf-8 -*-
"""
ldproc
======

ldproc_ is a Python JSON-LD_ processor: expansion, compaction, flattening,
framing, RDF conversion and RDF dataset canonicalization.

.. _ldproc: https://pypi.org/project/ldproc/
.. _JSON-LD: https://json-ld.org/
"""

from setuptools import setup
import os

# get meta data
about = {}
with open(os.path.join(
        os.path.dirname(__file__), 'lib', 'ldproc', '__about__.py')) as fp:
    exec(fp.read(), about)

with open(os.path.join(os.path.dirname(__file__), 'README.rst')) as fp:
    long_description = fp.read()

setup(
    name='ldproc',
    version=about['__version__'],
    description='JSON-LD processor with RDF dataset canonicalization',
    long_description=long_description,
    long_description_content_type='text/x-rst',
    packages=['ldproc', 'ldproc.documentloader'],
    package_dir={'': 'lib'},
    license='BSD 3-Clause license',
    python_requires='>=3.8',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Environment :: Console',
        'Environment :: Web Environment',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: BSD License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Topic :: Internet',
        'Topic :: Software Development :: Libraries',
    ],
    install_requires=['requests'],
    extras_require={
        'aiohttp': ['aiohttp'],
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': ['ldproc = ldproc.cli:main'],
    },
)
