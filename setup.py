"""
Setup script for trunker.
"""

from setuptools import setup, find_packages

setup(
    name="trunker",
    version="0.1.0",
    description="Feature flag gating for FastAPI / Starlette request pipelines",
    packages=find_packages(include=["trunker", "trunker.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110.0",
        "starlette>=0.36.0",
        "pydantic>=2.0.0",
        "structlog>=23.0.0",
        "prometheus-client>=0.17.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "httpx>=0.24.0",
        ],
    },
)
