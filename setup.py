#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from setuptools import setup, find_packages
from pathlib import Path

setup(
    name='techdoc-translator',
    version='1.0.0',
    package_dir={'': 'src'},
    packages=find_packages('src'),
    install_requires=[
        'chardet>=5.2.0',
        'pyyaml>=6.0.2',
        'requests>=2.32.3',
        'rich>=14.0.0',
        'tenacity>=9.1.2',
        'urllib3>=1.26.0',
    ],
    extras_require={
        'test': [
            'pytest>=8.0.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'techdoc-translate=techdoc_translator.cli:main',
        ],
    },
    author='Emasoft',
    author_email='713559+Emasoft@users.noreply.github.com',
    description='Technical document translator for OpenAI-compatible LLM backends that keeps code, tables and data intact',
    long_description=open('README.md').read() if Path('README.md').exists() else '',
    long_description_content_type='text/markdown',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'License :: OSI Approved :: Apache Software License',
        'Operating System :: OS Independent',
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Topic :: Text Processing :: Linguistic',
        'Topic :: Software Development :: Libraries :: Python Modules',
    ],
    python_requires='>=3.9',
)
