from setuptools import setup, find_packages

setup(
    name="couple-reminders",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "sqlalchemy",
        "pydantic",
        "pydantic-settings",
        "python-dotenv",
        "python-dateutil",
        "celery",
        "prometheus-client",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
)
