# setup.py
from setuptools import setup, find_packages

setup(
    name="lfe_include",
    version="0.1.0",
    description="Translate Erlang header files into LFE forms",
    packages=find_packages(include=["lfe_include", "lfe_include.*"]),
    python_requires=">=3.10",
    install_requires=["loguru"],
    extras_require={"test": ["pytest", "hypothesis"]},
    entry_points={"console_scripts": ["lfe-include=lfe_include.cli:main"]},
    zip_safe=False,
)
