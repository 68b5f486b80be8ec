"""
ClipScribe — setuptools build script.

Usage:
    # Development (editable install):
    pip install -e ".[test]"

    # Run the CLI:
    clipscribe --help
"""

from setuptools import setup, find_namespace_packages

APP_NAME = "clipscribe"

setup(
    name=APP_NAME,
    version="1.0.0",
    description="Transcribe uploaded media files and media URLs with Whisper",
    packages=find_namespace_packages(include=["clipscribe", "clipscribe.*"]),
    py_modules=["main"],
    install_requires=[
        "requests>=2.28.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "clipscribe=main:main",
        ],
    },
)
