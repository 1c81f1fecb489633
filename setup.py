from setuptools import setup, find_packages

setup(
    name="token-bucket-simulator",
    version="0.1.0",
    description="Frame-based token bucket rate limiting simulation",
    author="adamfilli",
    packages=find_packages(include=["tokenbucketsim", "tokenbucketsim.*"]),
    install_requires=[
        "matplotlib",
        "numpy",
        "pandas",
    ],
    extras_require={
        "test": ["pytest"],
    },
    include_package_data=True,
    python_requires=">=3.11",
)
