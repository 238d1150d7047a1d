"""Setup configuration for the Custom Field Engine package."""

from setuptools import setup, find_namespace_packages

setup(
    name="custom-field-engine",
    version="1.0.0",
    description="Custom membership form fields: identity, schema mapping, validation and evolution",
    author="Alex",
    author_email="",
    packages=find_namespace_packages(include=["config", "src", "src.*", "scripts"]),
    package_data={"config": ["*.yaml"]},
    python_requires=">=3.11",
    install_requires=[
        "pandas>=2.1.0",
        "openpyxl>=3.1.0",
        "python-dotenv>=1.0.0",
        "pyyaml>=6.0",
        "tqdm>=4.66.0",
    ],
    extras_require={
        "dev": [
            "pytest>=8.0.0",
            "pytest-cov>=4.1.0",
            "black>=24.1.0",
            "ruff>=0.2.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "custom-fields-analyze=scripts.analyze_custom_fields:main",
        ],
    },
)
