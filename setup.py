"""Setup script for the syllabus schedule extractor."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="syllabus-sync",
    version="0.1.0",
    author="Syllabus Sync",
    description="Extract assignment due dates from course schedule spreadsheets",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "dateparser>=1.2.0",
        "icalendar>=5.0.0",
        "pytz>=2023.3",
        "openpyxl>=3.1.0",
        "xlrd>=2.0.1",
        "Flask>=2.2.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "syllabus-sync=syllabus_sync.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Education",
        "Topic :: Education",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
