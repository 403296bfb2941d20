#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""The setup script."""

from setuptools import setup, find_packages

with open('README.rst') as readme_file:
    readme = readme_file.read()

with open('requirements.txt') as r:
    requirements = [line.strip() for line in r
                    if line.strip() and not line.startswith('#')]

test_requirements = ['pytest', ]

setup(
    name='tailboot',
    version='0.1.0',
    description='Build cloud-init user-data for Tailscale nodes',
    long_description=readme,
    long_description_content_type='text/x-rst',
    packages=find_packages(include=['tailboot', 'tailboot.*']),
    package_data={'tailboot.provision': ['userdata/*.sh']},
    python_requires='>=3.9',
    install_requires=requirements,
    extras_require={'test': test_requirements},
    entry_points={
        'console_scripts': ['tailboot=tailboot.tailboot:main'],
    },
)
