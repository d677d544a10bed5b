from setuptools import setup, find_packages

setup(
    name="snipalign",
    version="1.0.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "biopython",
        "pyyaml",
        "tqdm",
        "pandas",
        "openpyxl",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "snipalign=snipalign.main:main",
        ],
    },
)
