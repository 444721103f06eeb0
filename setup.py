from setuptools import setup, find_packages
import re

# Read version from whtcalc/__init__.py
with open('whtcalc/__init__.py') as f:
    version = re.search(r'^__version__ = ["\']([^"\']+)["\']', f.read(), re.MULTILINE).group(1)

setup(
    name='whtcalc',
    version=version,
    packages=find_packages(include=['whtcalc', 'whtcalc.*']),
    package_data={
        'whtcalc.sdk.taxes': ['rules.yaml'],
    },
    install_requires=[
        'PyYAML>=6.0',
        'click>=8.0',
        'pydantic>=2.0.0',
        'rich>=13.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'wht-calc=whtcalc.cli.__main__:main',
        ],
    },
    author='Personal',
    description='Income record checksum validation and withholding tax calculation.',
    python_requires='>=3.10',
)
