from setuptools import setup, find_packages

setup(
    name="iparesign",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "rich",
        "python-dotenv",
        "toml",
        "rich-argparse",
        "asn1crypto",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "iparesign=iparesign.cli:main",
        ],
    },
)
