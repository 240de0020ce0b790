"""Install the radarcsi packet decoder and its command-line tool."""

from setuptools import setup, find_packages

setup(
    name="radarcsi",
    version="0.1.0",
    description="Decoder, validator and encoder for CSI/radar telemetry packets",
    python_requires=">=3.10",
    package_dir={"": "python"},
    packages=find_packages("python"),
    install_requires=[
        "numpy",
        "pydantic>=2",
        "pyserial",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "radarcsi=radarcsi.cli:main",
        ],
    },
)
