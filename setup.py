import sys
from pathlib import Path

from setuptools import setup

if sys.version_info[0:2] < (3, 8):
    raise RuntimeError("This package requires Python 3.8+.")

setup(
    name="asyncentity",
    version="0.1.0",
    packages=[
        "asyncentity",
        "asyncentity.orm",
        "asyncentity.orm.schema",
        # namespace packages yay
        "asyncentity.backends",
        # postgres backend
        "asyncentity.backends.postgresql",
        # sqlite3 backend
        "asyncentity.backends.sqlite3"
    ],
    license="MIT",
    description="An asyncio ORM with ambient, per-task transactions",
    long_description=Path(__file__).with_name("README.rst").read_text(encoding="utf-8"),
    install_requires=[
        "cached_property>=1.5.0",
    ],
    extras_require={
        "postgresql": [
            "asyncpg>=0.27.0"
        ],
        "sqlite3": [
            "aiosqlite>=0.17.0",
            "asyncpg>=0.27.0",
        ],
        "test": [
            "pytest",
            "pytest-asyncio>=0.17",
            "pytest-cov",
            "aiosqlite>=0.17.0",
            "asyncpg>=0.27.0",
        ]
    },
    python_requires=">=3.8",
)
