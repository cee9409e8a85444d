from setuptools import setup, find_packages

setup(
    name="fleet_nl2sql",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"fleet_nl2sql": ["services/*.yaml"]},
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic>=2",
        "httpx",
        "openai>=1.0",
        "numpy",
        "pyyaml",
        "python-dotenv"
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio"
        ]
    },
)
