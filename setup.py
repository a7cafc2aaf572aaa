# setup.py
from setuptools import setup, find_namespace_packages

setup(
    name="repoprompt",
    version="1.2.0",
    description="Builds LLM context bundles from selected files of local or remote directory trees",
    author="RepoPrompt Contributors",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["repoprompt*"]),
    python_requires=">=3.9",
    install_requires=[
        "requests",
        "tiktoken",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'repoprompt=repoprompt.interface.cli.app:main',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
