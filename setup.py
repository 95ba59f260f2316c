from setuptools import setup, find_packages

setup(
    name="outparse",
    version="0.1.0",
    description="Outparse — writing assistant with suggestion reconciliation",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "requests",
        "pyspellchecker>=0.7",
        "python-docx",
        "flask>=2.0",
        "textstat",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "outparse=outparse.main:main",
        ],
    },
)
