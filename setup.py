from setuptools import setup, find_packages


setup(
    name="stegano",
    version="0.1",
    packages=find_packages(include=["stegano", "stegano.*"]),
    description="Hide encrypted payloads in PNG images by splicing a record into the chunk stream.",
    install_requires=[
        "pycryptodomex>=3.23.0",
    ],
    entry_points={
        "console_scripts": [
            "stegano=stegano.cli:main",
        ]
    },
)
