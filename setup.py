# setup.py
from setuptools import setup, find_packages

setup(
    name="mathgen",
    version="0.1.0",
    description="Generate verified math problem documents with TikZ figures via OpenAI",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "sympy",
        "matplotlib",
        "pillow",
        "numpy",
        "openai>=1.40.0",
        "json5",
    ],
    extras_require={
        "test": ["pytest", "httpx"],
    },
    entry_points={
        "console_scripts": [
            "mathgen = mathgen.cli:main",
        ],
    },
)
