from setuptools import setup, find_packages

setup(
    name="lane-sketch",
    version="1.0.0",
    description="Freehand-drawn multi-lane roads with lane-following traffic",
    author="Lane-Sketch Team",
    packages=find_packages(exclude=["tests"]),
    py_modules=["main", "simulate"],
    python_requires=">=3.10",
    install_requires=[
        "pygame>=2.5.0",
        "numpy>=1.24.0",
        "matplotlib>=3.7.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "lane-sketch=main:main",
            "lane-sketch-run=simulate:run",
        ],
    },
)
