from setuptools import find_packages, setup

exec(open("ntpquery/_version.py", encoding="utf-8").read())

with open("LONG_DESCRIPTION.rst", encoding="utf8") as f:
    LONG_DESC = f.read()

setup(
    name="ntpquery",
    version=__version__,
    description="Ask an NTP server what time it is, with trio",
    long_description=LONG_DESC,
    long_description_content_type="text/x-rst",
    license="MIT OR Apache-2.0",
    packages=find_packages(include=["ntpquery", "ntpquery.*"]),
    install_requires=[
        # trio 0.15.0 renames trio.hazmat to trio.lowlevel
        "trio >= 0.15.0",
        # attrs 20.1.0 adds @frozen
        "attrs >= 20.1.0",
        "idna",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": ["ntpquery = ntpquery.__main__:main"],
    },
    python_requires=">=3.8",
    keywords=["ntp", "time", "networking", "trio"],
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Framework :: Trio",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3 :: Only",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Networking :: Time Synchronization",
    ],
)
