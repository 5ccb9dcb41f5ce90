from setuptools import setup

setup(
    name='picardode',  # Picard predictor-corrector for scalar ODEs
    version='0.1.0',
    package_dir={'': 'src/python/picardode/src'},
    packages=['picardode'],
    python_requires='>=3.9',
    install_requires=[
        'torch',
    ],
    extras_require={
        'test': ['pytest', 'numpy', 'scipy'],
        'examples': ['numpy', 'scipy'],
    },
)
