from setuptools import setup, find_packages  # ignore: type

setup(
    name="etcd_snapshot",
    version="1.0.0",
    description="Test helpers to list, create and restore etcd snapshots on Rancher managed clusters",
    packages=find_packages(exclude=("tests",)),
    install_requires=["requests", "pyyaml", "Click", "cerberus", "pydantic>=2"],
    extras_require={
        "test": ["pytest", "pytest-mock", "requests-mock"],
    },
    entry_points={
        "console_scripts": [
            "etcd-snapshot = etcd_snapshot.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Testing",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "License :: OSI Approved :: Apache Software License",
    ],
)
