# Always prefer setuptools over distutils
from setuptools import setup, find_packages
# To use a consistent encoding
from codecs import open
from os import path

from cpclient import __version__

here = path.abspath(path.dirname(__file__))

# Get the long description from the README file
with open(path.join(here, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='chainpoint-client',

    # Versions should comply with PEP440.  For a discussion on single-sourcing
    # the version across setup.py and the project code, see
    # https://packaging.python.org/en/latest/single_source_version.html
    version=__version__,

    description='Library and command-line tool to submit, retrieve and verify Chainpoint proofs',
    long_description=long_description,
    long_description_content_type='text/markdown',

    # Choose your license
    license='LGPL3',

    # See https://pypi.python.org/pypi?%3Aaction=list_classifiers
    classifiers=[
        'Development Status :: 4 - Beta',

        'Intended Audience :: Developers',
        'Intended Audience :: End Users/Desktop',
        'Topic :: Security :: Cryptography',

        'License :: OSI Approved :: GNU Lesser General Public License v3 or later (LGPLv3+)',

        'Programming Language :: Python :: 3 :: Only',
    ],

    keywords='cryptography timestamping bitcoin chainpoint',

    packages=find_packages(exclude=['contrib', 'docs', 'tests']),

    python_requires='>=3.8',

    # List run-time dependencies here.  These will be installed by pip when
    # your project is installed.
    install_requires=['httpx>=0.23.0',
                      'python-bitcoinlib>=0.11.0',
                      'appdirs>=1.3.0',
                      'msgpack>=1.0.0'],

    # $ pip install -e .[test]
    extras_require={
        'test': ['pytest'],
    },

    package_data={},

    data_files=[],

    entry_points={
        'console_scripts': [
            'chainpoint = cpclient.cp:main',
        ],
    },
)
