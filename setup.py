# setup.py
from setuptools import setup, find_namespace_packages

setup(
    name="cpamm",
    version="0.1.0",
    packages=find_namespace_packages(include=["cpamm", "cpamm.*"]),
    install_requires=[
        "msgpack",            # state encoding
        "plyvel",             # LevelDB storage
        "pycryptodome",       # keccak for pool addresses
        "prometheus_client",  # metrics
        "psutil",             # monitoring
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "cpamm-tool=cpamm.pool_tool:main",
        ],
    },
)
