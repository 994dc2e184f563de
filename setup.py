"""chatsync setup - offline outbox and message cache for the chat client."""
from setuptools import setup, find_packages

setup(
    name="chatsync",
    version="0.1.0",
    description="chatsync: offline outbox and reconciliation for a chat client",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10",
    install_requires=[
        "click>=8.0",
        "blake3>=0.3",
        "aiofiles>=23.1",
        "httpx>=0.24",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "chatsync=chatsync.cli.main:cli",
        ],
    },
)
