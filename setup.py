#!/usr/bin/env python3
"""
Setup configuration for GeoFuse
"""

from setuptools import setup, find_packages
import os
from pathlib import Path

# Read the full description
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding='utf-8') if (this_directory / "README.md").exists() else ""

# Read the version from __init__.py file
def get_version():
    """Get the version from __init__.py file"""
    version_file = os.path.join(os.path.dirname(__file__), 'geofuse', '__init__.py')
    try:
        with open(version_file, 'r', encoding='utf-8') as f:
            for line in f:
                if line.strip().startswith('__version__'):
                    return line.split('=')[1].strip().strip('"').strip("'")
    except FileNotFoundError:
        pass
    return "1.0.0"  # Default version

# Essential required dependencies
REQUIRED = [
    "click>=8.2.0",          # CLI interface
    "pyyaml>=6.0",           # Configuration files
    "aiohttp>=3.8.0",        # Asynchronous provider requests
    "rich>=13.0.0",          # CLI tables and messages
]

# Optional dependencies
EXTRAS = {
    'dev': [
        "pytest>=7.0.0",
        "pytest-asyncio>=0.21.0",
        "pytest-cov>=4.0.0",
        "black>=22.0.0",
        "flake8>=5.0.0",
        "mypy>=1.0.0",
    ]
}

setup(
    # Basic package information
    name="geofuse",
    version=get_version(),
    description="Multi-source IP geolocation aggregation and heuristic threat assessment",
    long_description=long_description,
    long_description_content_type="text/markdown",

    # License and classifications
    license="MIT",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Internet",
        "Topic :: Security",
        "Topic :: System :: Networking",
    ],
    keywords="geolocation, geoip, ip, threat, vpn, proxy, tor",

    # Python requirements
    python_requires=">=3.10",

    # Packages and files
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,

    # Dependencies
    install_requires=REQUIRED,
    extras_require=EXTRAS,

    # Entry points (Console Scripts)
    entry_points={
        'console_scripts': [
            'geofuse=geofuse.main:main',
        ],
    },

    zip_safe=False,
    platforms=["any"],
)
