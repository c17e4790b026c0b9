from setuptools import find_packages, setup

setup(
    name="ngm",
    version="0.2.0",
    packages=find_packages(include=["ngm", "ngm.*"]),
    entry_points={
        "console_scripts": [
            "ngm=ngm.cli:main",
        ],
    },
    extras_require={
        "test": ["pytest>=7"],
    },
    python_requires=">=3.10",
    description="ngm: manage groups of git repositories as projects sharing a branch",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Version Control :: Git",
        "Programming Language :: Python :: 3.12",
    ],
)
