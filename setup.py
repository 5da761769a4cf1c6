"""
Setup script for Game Session Client.

A Python client library for authenticating against a remote game API,
persisting the session credential, and running authenticated queries.
"""

from setuptools import setup, find_packages
import os
import re

# Get version from __init__.py
def get_version():
    init_path = os.path.join(os.path.dirname(__file__), 'game_session_client', '__init__.py')
    if os.path.exists(init_path):
        with open(init_path, 'r', encoding='utf-8') as f:
            content = f.read()
            version_match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]", content, re.M)
            if version_match:
                return version_match.group(1)
    return "0.1.0"

# Read the README file for long description
def read_readme():
    readme_path = os.path.join(os.path.dirname(__file__), 'README.md')
    if os.path.exists(readme_path):
        with open(readme_path, 'r', encoding='utf-8') as f:
            return f.read()
    return "Game Session Client - session and credential management for a remote game API."

# Read requirements from requirements.txt, filtering out dev dependencies
def read_requirements():
    requirements_path = os.path.join(os.path.dirname(__file__), 'requirements.txt')
    requirements = []
    dev_packages = {'pytest', 'pytest-asyncio', 'pytest-mock', 'pytest-cov', 'mypy', 'types-'}

    if os.path.exists(requirements_path):
        with open(requirements_path, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#'):
                    if not any(dev_pkg in line.lower() for dev_pkg in dev_packages):
                        requirements.append(line)
    return requirements

setup(
    name="game-session-client",
    version=get_version(),
    author="Game Session Client Team",
    description="Session and credential management for a remote game backend API",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Games/Entertainment",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Environment :: Console",
        "Framework :: AsyncIO",
    ],
    python_requires=">=3.10",
    install_requires=read_requirements() or [
        "aiohttp>=3.9.0",
        "PyYAML>=6.0.1",
        "aiofiles>=23.2.1",
    ],
    extras_require={
        "dev": [
            "pytest>=8.2.2",
            "pytest-asyncio>=0.23.7",
            "pytest-mock>=3.14.0",
            "pytest-cov>=5.0.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.10.0",
            "types-PyYAML",
            "types-aiofiles",
        ],
    },
    entry_points={
        "console_scripts": [
            "game-session-client=game_session_client.cli:main",
        ],
    },
    zip_safe=False,
    keywords="game client session authentication bearer token asyncio aiohttp",
)
