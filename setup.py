from setuptools import setup, find_packages

setup(
    name="learntube",
    version="0.1.0",
    packages=find_packages(include=["learntube", "learntube.*"]),
    python_requires=">=3.12",
    install_requires=[
        "fastapi",
        "uvicorn",
        "httpx",
        "pydantic",
        "pydantic-settings",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "respx",
        ],
    },
)
