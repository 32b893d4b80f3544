from setuptools import setup, find_namespace_packages

setup(
    name="clinic-backend",
    version="0.1.0",
    # core, db, api and utils are namespace subpackages
    packages=find_namespace_packages(include=["clinic", "clinic.*"]),
    python_requires=">=3.10",
    install_requires=[
        "fastapi",
        "uvicorn",
        "sqlalchemy>=2.0",
        "psycopg2-binary",
        "python-jose[cryptography]",
        "passlib[bcrypt]",
        "bcrypt<4.1",
        "python-multipart",
        "pydantic>=2",
        "pydantic-settings",
        "celery[redis]",
        "prometheus-client",
        "prometheus-fastapi-instrumentator",
        "tzdata",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
        ],
    },
)
