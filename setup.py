from setuptools import setup, find_packages

setup(
    name='lambda-loader',
    version='0.1.0',
    description='Verified acquisition of Maven-hosted artifacts',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    python_requires='>=3.9',
    install_requires=[
        'requests',
        'urllib3',
        'PyYAML',
        'platformdirs',
        'rich',
    ],
    extras_require={
        'test': [
            'pytest<9',
            'pytest-mock',
        ],
    },
    entry_points={
        'console_scripts': [
            'lambda-loader=lambda_loader.cli:main',
        ],
    },
)
