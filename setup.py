# -*- Mode: Python -*-
"""paycode

This tool uses the official PyPa packaging and click recommendations:
https://github.com/pypa/sampleproject
https://packaging.python.org/en/latest/distributing.html
http://click.pocoo.org/4/setuptools/
"""
from setuptools import setup


install_requires = [
    'base58>=2.0',
    'click',
    'mnemonic',
    'path>=17',
    'tabulate',
]

version = __import__('paycode').PAYCODE_VERSION

setup(
    name='paycode',
    version=version,
    description='BIP47 reusable payment codes and payment channels for bitcoin wallets.',
    license='MIT',

    # See https://pypi.python.org/pypi?%3Aaction=list_classifiers
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Topic :: Security :: Cryptography',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
    ],
    keywords='bitcoin bip47 payment-code wallet',

    packages=['paycode',
              'paycode.crypto',
              'paycode.bitcoin',
              'paycode.bip47',
              'paycode.channels',
    ],

    install_requires=install_requires,

    # $ pip install -e .[test]
    extras_require={
        'test': ['pytest'],
    },

    entry_points={
        'console_scripts': [
            'paycode=paycode.channels.cli:main',
        ],
    },
)
