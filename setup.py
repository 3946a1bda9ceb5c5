"""Setup file for ShopList package."""
from setuptools import setup, find_packages

setup(
    name="shoplist",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "loguru>=0.7",
        "openpyxl>=3.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.1.1",
        ],
    },
    python_requires=">=3.9",
)
