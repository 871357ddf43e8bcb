# setup.py
from setuptools import setup, find_packages

install_requires = [
    # --- HTTP ---
    "httpx>=0.27.0",

    # --- MODELS & CONFIG ---
    "pydantic>=2.0.0",
    "python-dotenv>=1.0.0",
    "pyyaml>=6.0.0",
]

extras_require = {
    # --- TESTS ---
    "test": [
        "pytest-asyncio==1.3.0",
        "pytest",
    ],
}

setup(
    name="courierkit",
    version="0.1.0",
    description="Courier delivery client: session and order state over the delivery REST API",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=install_requires,
    extras_require=extras_require,
    entry_points={
        "console_scripts": [
            "courierkit=courierkit.app.main:cli",
        ],
    },
    python_requires=">=3.11",
)
