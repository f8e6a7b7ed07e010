from os import path
from setuptools import setup, find_packages

# Get the long description from the README file
here = path.abspath( path.dirname( __file__ ) )
with open( path.join( here, 'DESCRIPTION.rst' ), encoding='utf-8' ) as f:
    long_description = f.read()

# Read the version without importing the package
about = {}
with open( path.join( here, 'pchtxt', 'version.py' ), encoding='utf-8' ) as f:
    exec( f.read(), about )

setup( 
    name='pchtxt',
    version=about['__version__'],
    description=('A parser for Patch Text (pchtxt) files '
                'with an IPS32 patch writer'),
    long_description=long_description,
    license='GPLv2',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Environment :: Console',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: GNU General Public License v2 (GPLv2)',
        'Programming Language :: Python :: 3 :: Only',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ],
    python_requires='>=3.8',
    install_requires=[
        'typing_extensions >= 3.7.4',
    ],
    extras_require={
        'test': ['pytest'],
    },
    packages=find_packages( exclude=['doc'] ),
    entry_points={
        'console_scripts': [
            'pchtxt2ips = pchtxt.cli:pchtxt2ips',
        ],
    },
)
