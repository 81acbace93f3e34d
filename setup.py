"""
Packaging for linecast. Install with `pip install -e .[test]` and run the tests with `pytest src`.

Provides the `linecast` command:

    linecast -f [file path] -p [tcp port] [-a [ip address]] [-r] [-d [seconds]] [-i] [-s [certificate]]
"""

from setuptools import setup


setup(
    name='linecast',
    version='0.0.1',
    description='Broadcasts a text file over TCP, line by line with a delay, to simulate a data feed.',
    url='',
    author='',
    author_email='',
    license='LGPL',
    package_dir={'': 'src'},
    packages=['linecast', 'linecast.conduit', 'linecast.config', 'linecast.connector', 'linecast.support'],
    package_data={'linecast.config': ['*.cfg'], 'linecast.connector': ['testdata/*.pem']},
    python_requires='>=3.8',
    install_requires=[
        'configobj>=5.0.6',
    ],
    extras_require={
        'test': [
            'pyhamcrest>=2.0',
            'timeout-decorator',
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'linecast = linecast.cli:main',
        ],
    },
    zip_safe=False,
)
