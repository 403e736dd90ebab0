# setup.py

from setuptools import setup, find_packages
from pathlib import Path

readme = Path(__file__).parent / "README.md"
long_description = readme.read_text() if readme.exists() else ""

setup(
    name="goldenaxe-admin",
    version="0.1.0",
    description="Alerting, notifications and health API for the Golden Axe log indexer",
    long_description=long_description,
    long_description_content_type="text/markdown",

    packages=find_packages(include=["goldenaxe_admin", "goldenaxe_admin.*"]),

    install_requires=[
        "fastapi>=0.110.0",
        "uvicorn[standard]>=0.27.0",
        "sqlalchemy[asyncio]>=2.0.0",
        "asyncpg>=0.29.0",
        "pydantic>=2.0.0",
        "redis>=5.0.1",
        "httpx>=0.27.0",
    ],

    extras_require={
        "dev": ["pytest", "pytest-asyncio>=0.23", "black", "mypy"]
    },

    python_requires=">=3.10",

    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ]
)
