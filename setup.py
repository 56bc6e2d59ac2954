"""Install the UCenter identity gateway package."""

from setuptools import setup, find_packages

setup(
    name='ucenter-gateway',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    install_requires=[
        "sqlalchemy>=2.0",
        "pyjwt>=2.0",
        "requests",
        "pytz",
        "email-validator",
        "python-json-logger",
    ],
    extras_require={
        'test': [
            "pytest",
            "hypothesis",
            "mimesis",
        ]
    },
    python_requires='>=3.8',
    zip_safe=False
)
