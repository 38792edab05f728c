#!/usr/bin/env python3
"""
Setup script for the Inheritance Cycle Analysis MCP Server
"""
from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

# Read requirements
requirements = (this_directory / "requirements.txt").read_text(encoding="utf-8").splitlines()
requirements = [r.strip() for r in requirements if r.strip() and not r.startswith("#")]

setup(
    name="inheritance-cycle-mcp",
    version="0.1.0",
    author="Inheritance Cycle MCP Contributors",
    description="Detect cyclic class inheritance in C++ projects and class relationship snapshots",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
            "httpx>=0.24",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Quality Assurance",
    ],
    keywords="mcp model-context-protocol c++ cpp clang libclang inheritance cycle code-analysis",
    entry_points={
        "console_scripts": [
            "inheritance-cycle-mcp=inheritance_cycles.cycle_mcp_server:cli",
        ],
    },
    zip_safe=False,
)
