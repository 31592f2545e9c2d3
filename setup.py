# setup.py
from setuptools import setup, find_packages

setup(
    name="ui_scout",
    version="0.1.0",
    description="Асинхронный сканер UI-дефектов UIScout",
    packages=find_packages(include=["ui_scout", "ui_scout.*"]),
    install_requires=[
        "aiohttp>=3.9",
        "beautifulsoup4>=4.12",
        "click>=8.1",
        "lxml>=5.0",
        "playwright>=1.40",
        "pydantic>=2.5",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": ["ui-scout=ui_scout.cli:cli"],
    },
    python_requires=">=3.11",
)
