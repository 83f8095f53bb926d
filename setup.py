#!/usr/bin/env python
#
# Copyright 2014 Sangoma Technologies Inc.
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
from setuptools import setup

with open('README.rst', encoding='utf-8') as f:
    readme = f.read()


setup(
    name="switchbridge",
    version='0.1.0',
    description='Call center bridge scenarios over the FreeSWITCH '
                'event socket',
    long_description=readme,
    license='Mozilla',
    author='Sangoma Technologies',
    maintainer='Tyler Goodlet',
    maintainer_email='tgoodlet@gmail.com',
    platforms=['linux'],
    packages=[
        'switchbridge',
    ],
    entry_points={
        'console_scripts': [
            'switchbridge = switchbridge.cli:cli',
        ]
    },
    install_requires=['click', 'colorlog', 'gevent', 'greenswitch'],
    extras_require={
        'testing': ['pytest'],
    },
    tests_require=['pytest'],
    classifiers=[
        'Development Status :: 3 - Alpha',
        'License :: OSI Approved :: Mozilla Public License 2.0 (MPL 2.0)',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python :: 3',
        'Intended Audience :: Telecommunications Industry',
        'Intended Audience :: Developers',
        'Topic :: Communications :: Telephony',
        'Environment :: Console',
    ],
)
