"""
HubCoin Rewards - Telegram bot and Mini App rewards ledger
"""

from setuptools import setup, find_packages

setup(
    name="hubcoin-rewards",
    version="1.0.0",
    description="Rewards ledger backend for a tap-to-earn Telegram Mini App",
    python_requires=">=3.11",
    packages=find_packages(exclude=("tests", "tests.*")),
    install_requires=[
        "fastapi>=0.104.0",
        "uvicorn[standard]>=0.24.0",
        "python-telegram-bot>=20.7",
        "sqlalchemy[asyncio]>=2.0.0",
        "asyncpg>=0.29.0",
        "redis>=5.0.0",
        "httpx>=0.25.0",
        "python-dotenv>=1.0.0",
        "pydantic>=2.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
            "aiosqlite>=0.19.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "hubcoin-api=bot_api.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.11",
    ],
)
