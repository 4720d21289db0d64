"""
Setup script for abacus-practice-engine.

The abacus practice engine plans and adapts soroban practice sessions:

1. Problem Generation - Multi-term problems constrained by bead technique
2. Mastery Tracking - Bayesian Knowledge Tracing per skill
3. Session Delivery - Three-part plans with retry epochs

The 'abacus-engine' command is the terminal entry point.
"""

from setuptools import find_packages, setup

setup(
    name="abacus-practice-engine",
    version="1.0.0",
    description="Adaptive soroban practice: problem generation, mastery tracking and session planning",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "abacus-engine=abacus_engine.delivery.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="abacus soroban practice bkt education",
)
