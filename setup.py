
"""Setup configuration for jobrelay."""

from setuptools import setup, find_packages

setup(
    name="jobrelay",
    version="1.0.0",
    description="Reliable delivery of jobs to a remote write endpoint with retry and backoff",
    author="Your Name",
    packages=find_packages(include=["jobrelay", "jobrelay.*"]),
    install_requires=[
        "click>=8.1.7",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "requests>=2.31",
        "urllib3>=1.26",
        "Flask>=3.0",
        "Werkzeug>=3.0",
        "structlog>=23.1",
    ],
    extras_require={
        "test": ["pytest>=7.4"],
    },
    entry_points={
        "console_scripts": [
            "jobrelay=jobrelay.cli:cli",
        ],
    },
    python_requires=">=3.8",
)
