from setuptools import setup, find_packages
import pathlib

# Detect layout
use_src = pathlib.Path("src/orcaflow").exists()
pkg_args = {"package_dir": {"": "src"}, "packages": find_packages(where="src")} if use_src \
           else {"packages": find_packages(where=".")}

setup(
    name="orca-flow",
    version="0.1.0",
    python_requires=">=3.9",
    include_package_data=True,
    package_data={"orcaflow": ["templates/*.j2"]},
    install_requires=[
        "typer>=0.9",
        "jinja2>=3.0",
        "pydantic>=2.0",
        "PyYAML>=6.0",
        "pandas>=1.5",
    ],
    extras_require={"test": ["pytest>=7"]},
    entry_points={"console_scripts": ["orcaflow=orcaflow.cli:app"]},
    **pkg_args
)
