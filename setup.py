# -*- coding: utf-8 -*-
import setuptools
import pathlib
import site
import sys

# odd bug with develop (editable) installs, see: https://github.com/pypa/pip/issues/7953
site.ENABLE_USER_SITE = "--user" in sys.argv[1:]

required = [
    "numpy",
    "mashumaro",
    "python-osc>=1.8.0",
    "loguru",
    "setproctitle",
    "click>=8.0.0",
    "psutil>=6.1.0",
]

test_required = [
    "pytest",
    "pytest_asyncio>=0.24.0",
]

here = pathlib.Path(__file__).parent.resolve()

long_description = (here / "README.md").read_text(encoding="utf-8")

# Read version
version = {}
with open("src/layosc/_version.py", "r") as f:
    exec(f.read(), version)

if __name__ == "__main__":
    setuptools.setup(
        name="layosc",
        version=version["__version__"],
        description="OSC/UDP bridge between gate-level clients and quantum execution layers.",
        long_description=long_description,
        long_description_content_type="text/markdown",
        keywords=[
            "OSC",
            "UDP",
            "Quantum",
            "Quantum Gates",
            "Simulator",
        ],
        classifiers=[
            "License :: OSI Approved :: MIT License",
            "Development Status :: 2 - Pre-Alpha",
        ],
        license="MIT",
        package_dir={"": "src"},
        packages=setuptools.find_packages(
            where="src",
            exclude=["*.test", "*.test.*", "test.*", "test", "test_*"],
        ),
        entry_points={
            "console_scripts": [
                "layosc=layosc.cli:cli",
            ],
        },
        install_requires=required,
        extras_require={"test": test_required},
        python_requires=">= 3.11",
        package_data={"": ["*.md", "*.ini"]},
    )
# https://setuptools.readthedocs.io/en/latest/userguide/datafiles.html
