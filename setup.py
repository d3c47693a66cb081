"""Setup configuration for the visual-suite tool."""

from setuptools import setup, find_packages

setup(
    name="visual-suite",
    version="0.1.0",
    description="Visual regression suite for the ToDo web app",
    packages=find_packages(include=["visual_suite", "visual_suite.*"]),
    python_requires=">=3.9",
    install_requires=[
        "requests>=2.31.0",
        "pyyaml>=6.0",
        "click>=8.1.0",
        "pytest>=7.0",
        "playwright>=1.40.0",
        "eyes-playwright",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-playwright>=0.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "visual-suite=visual_suite.cli:main",
        ],
    },
)
