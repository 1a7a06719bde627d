from setuptools import setup, find_packages

setup(
    name="dramap",
    version="1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            #cli 'dramap' -> dramap/main.py:main()
            "dramap=dramap.main:main",
        ],
    },
    install_requires=[
        # build dependencies
        "setuptools",
        "wheel",
        # program dependencies
        "matplotlib",
        "jsonschema",
        "colorama"
    ],
    extras_require={
        "test": ["pytest"],
    },
)
