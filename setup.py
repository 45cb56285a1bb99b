"""
Setup script for Work Order Tracker

Time tracking and persistence core for maintenance work orders and
production tasks: timer lifecycle, time statistics, ownership-checked
persistence with retries.
"""

from setuptools import setup, find_packages
import pathlib

here = pathlib.Path(__file__).parent.resolve()

# Get the long description from the README file
try:
    long_description = (here / "README.md").read_text(encoding="utf-8")
except FileNotFoundError:
    long_description = """
    Work Order Tracker

    Tracks maintenance tickets and production tasks through a
    start/pause/resume/stop timer, derives effective and pause time from the
    event history, and persists records with ownership enforcement and retry
    over transient storage failures.
    """

setup(
    name="work-order-tracker",
    version="1.0.0",
    description="Time tracking and persistence core for maintenance work orders",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Work Order Tracker Team",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    keywords="work orders, maintenance, time tracking, async",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        # Core dependencies
        "asyncpg>=0.27.0",
        "click>=8.0.0",

        # Configuration
        "pyyaml>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "black>=22.0.0",
            "isort>=5.10.0",
            "mypy>=1.0.0",
            "coverage>=6.0.0",
            "flake8>=5.0.0",
        ],
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "work-order-tracker=work_order_tracker.cli.main:main",
            "wot=work_order_tracker.cli.main:main",
        ],
    },
    include_package_data=True,
)
