from setuptools import setup, find_packages

setup(
    name="tripscore-tools",
    version="0.1.0",
    description="Trip segmentation, driving event classification and scoring from GNSS location streams",
    packages=find_packages(),
    python_requires=">=3.11",
    install_requires=[
        "numpy>=1.24",
        "pandas>=2.0",
        "pyarrow>=14.0",
        "tqdm>=4.65",
        "tzdata",
        "zstandard>=0.21",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "tripscore-replay=tripscore_tools.replay_trips:main",
            "tripscore-simulate=tripscore_tools.simulate_drive:main",
        ],
    },
)
