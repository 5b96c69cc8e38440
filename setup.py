#!/usr/bin/env python

from setuptools import setup, find_packages
import os

from ffldb import __version__

here = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(here, 'README.md')) as f:
    README = f.read()

requires = ['plyvel']

setup(name='python-ffldb-recover',
      version=__version__,
      description='Rebuild a Bitcoin node block index by replaying its flat block files.',
      long_description=README,
      long_description_content_type='text/markdown',
      classifiers=[
          "Programming Language :: Python",
          "Programming Language :: Python :: 3",
          "License :: OSI Approved :: MIT License",
      ],
      keywords='bitcoin',
      packages=find_packages(),
      zip_safe=False,
      python_requires='>=3.6',
      install_requires=requires,
      entry_points={
          'console_scripts': ['ffldb-recover=ffldb.cli:main'],
      },
      test_suite="ffldb.tests"
     )
