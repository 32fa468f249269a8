from setuptools import setup, find_packages

setup(
    name="agentflow",
    version="0.1.0",
    description="Multi-agent workflow engine driven by YAML workflow files",
    author="agentflow contributors",
    packages=find_packages(include=["agentflow*", "config*", "utils*"]),
    install_requires=[
        "pydantic>=2.0.0",
        "pyyaml>=6.0",
        "openai>=1.0.0",
        "aiohttp>=3.8.0",
        "click>=8.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "black>=22.0.0",
            "isort>=5.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "agentflow=agentflow.cli:main",
        ],
    },
    python_requires=">=3.8",
)
