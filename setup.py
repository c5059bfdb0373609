from setuptools import setup, find_packages

setup(
    name='devcontainer_ci',
    version='0.1',
    packages=find_packages(where='src'),
    package_dir={'': 'src'},
    install_requires=[
        'Click',
        'PyYAML',
        'docker',
        'pydantic>=2',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-mock',
        ],
    },
    entry_points='''
        [console_scripts]
        devcontainer-ci=devcontainer_ci.cli:cli
    ''',
)
