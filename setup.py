"""
Setup configuration for viralscript package.
"""

from setuptools import setup, find_packages

setup(
    name="viralscript",
    version="0.1.0",
    description="Creator persona script generation and orchestration core",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={
        "viralscript.personas": ["*.yaml"],
    },
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0",
        "google-genai>=1.0",
        "tenacity>=8.2",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
        "logfire>=0.50",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
)
