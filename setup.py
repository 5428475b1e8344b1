#!/usr/bin/env python
from setuptools import setup, find_packages
from nestedsets import __version__


with open('README.md') as fh:
    long_description = fh.read()

test_requirements = [
    'pytest>=7.0',
    'pytest-django>=4.5,<5.0',
]

setup_args = dict(
    name='django-nestedsets',
    version=__version__,
    license='Apache License 2.0',
    packages=find_packages(exclude=['tests', 'tests.*']),
    include_package_data=True,
    description='Nested sets trees for Django, with multiple trees per table',
    long_description=long_description,
    long_description_content_type='text/markdown',
    python_requires='>=3.11',
    install_requires=['Django>=4.2'],
    tests_require=test_requirements,
    extras_require={'test': test_requirements},
    classifiers=[
        'Intended Audience :: Developers',
        'License :: OSI Approved :: Apache Software License',
        'Environment :: Web Environment',
        'Framework :: Django',
        'Framework :: Django :: 4.2',
        'Framework :: Django :: 5.0',
        'Framework :: Django :: 5.1',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Operating System :: OS Independent',
        'Topic :: Software Development :: Libraries',
        'Topic :: Utilities'])


if __name__ == '__main__':
    setup(**setup_args)
