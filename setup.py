from setuptools import setup, find_packages

setup(
    name="sourceprint",
    version="0.1.0",
    description="Render a repository into one printable, syntax-highlighted HTML page plus a JSON manifest",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    license="0BSD",
    python_requires=">=3.10",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pygments>=2.19.2",
        "tqdm>=4.66",
        "mcp>=1.0.0,<2",
        "flask>=3.0",
    ],
    extras_require={
        "test": ["pytest>=8.0"],
    },
    entry_points={
        "console_scripts": [
            "sourceprint=sourceprint.cli:main",
            "sourceprint-mcp=sourceprint.mcp_server:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Utilities",
    ],
)
