from setuptools import setup, find_packages

setup(
    name="filepool",
    version="1.0.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.9",
    install_requires=[
        "pyyaml",
        "cryptography",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "filepool=filepool.client:main",
        ],
    },
)
