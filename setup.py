from setuptools import setup, find_packages

setup(
    name="recap-exam-toolkit",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10",
    install_requires=[
        "click>=8.0",
        "openpyxl>=3.0",
        "sqlalchemy>=2.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "recap-exam=recap_exam_toolkit.cli:main",
        ],
    },
)
