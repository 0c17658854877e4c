from setuptools import setup
import os

README_PATH = os.path.join(os.path.abspath(os.path.dirname(__file__)), 'README.md')
with open(README_PATH) as readme_file:
    README = readme_file.read()

setup(
    name='qaoacut',
    version='0.1.0',
    description='Distributed Max-Cut cost operator, QAOA phase layers, and cost statistics for sharded state vectors',
    long_description=README,
    long_description_content_type='text/markdown',
    license="Apache-2.0",
    classifiers=[
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering",
    ],
    packages=['qaoacut'],
    python_requires='>=3.8',
    install_requires=[
        'numpy',
        'numba',
        'networkx',
        'scipy',
    ],
    extras_require={
        'mpi': ['mpi4py'],
        'test': ['pytest'],
    },
    zip_safe=False,
)
