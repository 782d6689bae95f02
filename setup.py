"""
python -m build
twine upload dist/*
"""

from setuptools import setup, find_packages


def sweet_setup():
    with open("requirements.txt", "rt") as fp:
        install_requires = fp.read().strip().split("\n")

    version = "0.2.0"

    setup(
        name="sqlalchemy-sweet",
        packages=find_packages(exclude=["tests", "tests.*", "examples"]),
        version=version,
        license="MIT",
        description="sweet : syntactic sugar for SQLAlchemy model classes",
        long_description=open("README.rst").read(),
        keywords=["SqlAlchemy", "ORM", "Flask", "DSL"],
        python_requires=">=3.9, <4",
        install_requires=install_requires,
        classifiers=[
            "Development Status :: 3 - Alpha",
            "License :: OSI Approved :: MIT License",
            "Intended Audience :: Developers",
            "Framework :: Flask",
            "Topic :: Software Development :: Libraries",
            "Topic :: Database",
            "Programming Language :: Python :: 3.12",
            "Programming Language :: Python :: 3.11",
            "Programming Language :: Python :: 3.10",
            "Programming Language :: Python :: 3.9",
        ],
        extras_require={"test": ["pytest>=7.0", "Flask-SQLAlchemy>=3.0"]},
    )


sweet_setup()  # pragma: no cover
