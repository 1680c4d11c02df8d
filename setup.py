"""
Setup script for quizcore.

quizcore is the question type configuration and grading engine for
exam-style tests. It provides:

1. Question Types - global definitions binding a UI template to a scoring rule
2. Per-test Overrides - title, scoring rule and availability per test
3. Grading - mistake metrics and scoring formulas, with legacy fallbacks

The 'quizcore' command manages definitions and grades answers from the
terminal.
"""

from setuptools import find_packages, setup

setup(
    name="quizcore",
    version="1.0.0",
    description="Question type configuration and grading engine for exam-style tests",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Database
        "sqlalchemy>=2.0.0",
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
            "quizcore=quizcore.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Testing",
    ],
    keywords="quiz exam grading scoring education",
)
