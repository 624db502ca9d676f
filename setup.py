from setuptools import setup, find_packages

setup(
    name="keysplit",
    version="1.0.0",
    description="2-of-3 Shamir secret sharing over GF(256) with tamper-evident shares.",
    long_description=open("README.md").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["cli"],
    python_requires=">=3.8",
    install_requires=[
        "cryptography>=41.0.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "web": ["aiohttp>=3.9"],
        "test": ["pytest>=7.0", "aiohttp>=3.9"],
    },
    entry_points={
        "console_scripts": [
            "keysplit=cli:main",
        ],
    },
    classifiers=[
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Security :: Cryptography",
    ],
    license="MIT",
)
