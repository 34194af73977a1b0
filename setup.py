"""Setup script for timemachine."""

from pathlib import Path

from setuptools import find_packages, setup

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Read requirements, keeping test tooling out of install_requires
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
test_requirements = []

if requirements_file.exists():
    content = requirements_file.read_text().strip()
    lines = content.split("\n")

    for line in lines:
        line = line.strip()
        # Skip empty lines and comments
        if not line or line.startswith("#"):
            continue

        if "pytest" in line or "testing" in line.lower():
            test_requirements.append(line)
        else:
            requirements.append(line)

setup(
    name="timemachine",
    version="1.0.0",
    description="Calendar-aware civil date-times anchored to IANA time zones, with ambient per-request zones",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="TimeMachine Team",
    # Package configuration
    packages=find_packages(exclude=["tests*", "docs*"]),
    include_package_data=True,
    # Dependencies
    install_requires=requirements,
    extras_require={
        "test": test_requirements,
        "dev": test_requirements
        + [
            "mypy>=1.0.0",
            "ruff>=0.1.0",
        ],
    },
    python_requires=">=3.10",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Libraries",
        "Topic :: Software Development :: Internationalization",
        "Framework :: AsyncIO",
        "Framework :: aiohttp",
    ],
    keywords="timezone calendar persian jalali iana zoneinfo aiohttp contextvars",
    package_data={
        "timemachine": ["py.typed"],
    },
    zip_safe=False,
)
