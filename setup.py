"""Setup script for zk-service-discovery package"""

from setuptools import setup, find_packages

setup(
    name="zk-service-discovery",
    version="0.2.0",
    description="Service registration, discovery and configuration over ZooKeeper",
    long_description="Client helper that registers ephemeral service endpoints in ZooKeeper, discovers live endpoints with self re-arming watches and stores configuration data by path",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.7",
    install_requires=[
        "kazoo>=2.8.0",
        "pyyaml>=5.0.0",
    ],
    extras_require={
        "dev": ["pytest>=6.0", "pytest-cov", "black", "flake8"],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.7",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Topic :: System :: Distributed Computing",
        "Topic :: Software Development :: Libraries :: Application Frameworks",
    ],
)
