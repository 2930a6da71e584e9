from os import path

from setuptools import setup

this_dir = path.abspath(path.dirname(__file__))
with open(path.join(this_dir, "README.md")) as f:
    long_description = f.read()

setup(
    name="Civitas",
    description="Civitas - city and citizen registry with a hand-rolled unit of work",
    long_description=long_description,
    long_description_content_type="text/markdown",
    version="0.1",
    license="MIT",
    packages=["civitas", "civitas.core", "civitas.test"],
    package_data={
        "civitas": ["py.typed"],
    },
    keywords=["civitas", "unit-of-work", "identity-map", "sqlalchemy"],
    python_requires=">=3.9",
    install_requires=[
        "sqlalchemy>=1.4",
        "uvicorn",
        "colorama",
        "tenacity",
    ],
    extras_require={
        "test": ["pytest"],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Database",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
    ],
    entry_points={
        "console_scripts": [
            "civitas = civitas.command:console_main",
        ]
    },
)
