from setuptools import setup, find_packages
import os

# Read requirements from requirements.txt
with open("requirements.txt", "r") as f:
    requirements = [line.strip() for line in f.readlines() if line.strip() and not line.startswith("#")]

# Test-only requirements
with open("requirements-test.txt", "r") as f:
    test_requirements = [line.strip() for line in f.readlines() if line.strip() and not line.startswith("#")]

# Read README for long description
with open("README.md", "r") as f:
    long_description = f.read()

# Get version (create a VERSION file for easier updates)
version = "0.1.0"  # Default version
if os.path.exists("VERSION"):
    with open("VERSION", "r") as f:
        version = f.read().strip()

setup(
    name="hotline-training-server",
    version=version,
    description="Session transcript pipeline for hotline counselor training",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests*", "*.tests", "*.tests.*"]),
    install_requires=requirements,
    extras_require={"test": test_requirements},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "hotline-server=app.main:run_server",
        ],
    },
) 