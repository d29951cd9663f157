from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="dhamma_seeder",
    version="0.1.0",
    author="Dhamma Content Team",
    author_email="developer@example.com",
    description="Seed Supabase or Firestore from the Dhamma SQLite dataset",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["*.tests", "*.tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
    install_requires=[
        "typer[all]>=0.9.0",
        "rich>=13.4.0",
        "pydantic>=2.4.0",
        "pydantic-settings>=2.3.0",
        "structlog>=23.1.0",
        "python-dotenv>=1.0.0",
        "python-dateutil>=2.8.2",
        "supabase>=2.0.0",
        "psycopg[binary]>=3.1",
        "firebase-admin>=6.2.0",
    ],
    extras_require={
        "test": ["pytest>=7.4"],
    },
    entry_points={
        "console_scripts": [
            "dhamma-seed=dhamma_seeder.cli:app",
        ],
    },
)
