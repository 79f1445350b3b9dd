from setuptools import setup, find_packages

setup(
    name="statement_reconcile",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pandas",
        "numpy",
        "openpyxl",
        "xlrd",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-dependency",
        ],
    },
    author="Price Hatfield",
    description="A tool for importing Itaú bank statements and reconciling them with a budgeting ledger",
    python_requires=">=3.8",
)
