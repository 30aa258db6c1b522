from setuptools import setup, find_packages

setup(
    name="natstore",
    version="0.1.0",
    description="natstore - NATS core and JetStream messaging client layer",
    author="natstore Team",
    packages=find_packages(exclude=["tests", "tests.*", "examples"]),
    install_requires=[
        "nats-py>=2.6.0",
        "protobuf>=4.21.0",
        "python-json-logger>=2.0.0",
        "opentelemetry-api>=1.20.0",
        "opentelemetry-sdk>=1.20.0",
        "opentelemetry-exporter-otlp>=1.20.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov",
            "black",
            "isort",
            "pylint",
        ],
    },
    python_requires=">=3.9",
)
