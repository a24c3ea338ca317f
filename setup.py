#!/usr/bin/env python
from setuptools import setup
setup(
    name='httpmulti',
    version='0.5',
    description='Parallel pipelined HTTP requests through MIME multipart encoding',
    author='Six Apart',
    author_email='python@sixapart.com',
    license='BSD',

    packages=['httpmulti'],
    provides=['httpmulti'],
    python_requires='>=3.7',
    install_requires=['httplib2>=0.4.0'],
    extras_require={
        'test': ['pytest'],
    },
)
