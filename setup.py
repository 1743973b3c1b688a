from setuptools import setup, find_packages

setup(
    name="maileroo-client",
    version="0.1.0",
    description="Python client for the Maileroo email sending API: transactional, templated and bulk sends",
    author="",
    author_email="",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.8",
    install_requires=[
        "requests>=2.28.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "python-dotenv>=0.19.0",
        "click>=8.0.0",
        "PyYAML>=5.4.0",
        "filetype>=1.2.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "maileroo=maileroo.cli:main",
        ],
    },
)
