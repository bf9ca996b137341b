from setuptools import setup, find_packages

setup(
    name="grid-mailer",
    version="0.1.0",
    description="Compose email messages with a fluent builder and send them through SendGrid",
    author="",
    author_email="",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "email-validator>=2.0.0",
        "sendgrid>=6.9.0",
        "python-http-client>=3.3.0",
        "python-dotenv>=0.19.0",
        "click>=8.0.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "PyYAML>=5.4.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "grid-mailer=grid_mailer.cli:main",
        ],
    },
)
