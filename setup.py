"""
Setup script for the SES Email API CDK application.

Packages the Lambda runtime code (ses_email_api) and the CDK stacks
(stacks) that deploy it with API Gateway, SES, SNS and DynamoDB.
"""

import os

from setuptools import find_packages, setup

current_directory = os.path.abspath(os.path.dirname(__file__))
readme_path = os.path.join(current_directory, "README.md")

long_description = ""
if os.path.exists(readme_path):
    with open(readme_path, encoding="utf-8") as fh:
        long_description = fh.read()

setup(
    name="ses-email-api",
    version="1.0.0",
    description="Serverless email sending API with SES event logging to DynamoDB",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="AWS CDK Developer",
    author_email="developer@example.com",

    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["app"],
    include_package_data=True,

    python_requires=">=3.9",

    install_requires=[
        "aws-cdk-lib>=2.110.0,<3.0.0",
        "constructs>=10.0.0,<11.0.0",
        "boto3>=1.35.0",
        "botocore>=1.35.0",
        "python-dateutil>=2.8.0",
    ],

    extras_require={
        "dev": [
            "pytest>=8.3.0",
            "pytest-cov>=6.0.0",
            "moto[dynamodb]>=5.0.0",
            "black>=24.10.0",
            "flake8>=7.1.0",
            "mypy>=1.13.0",
        ],
        "test": [
            "pytest>=8.3.0",
            "moto[dynamodb]>=5.0.0",
        ],
    },

    entry_points={
        "console_scripts": [
            "ses-email-api-cdk=app:main",
        ],
    },

    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Communications :: Email",
    ],

    keywords=["aws", "cdk", "ses", "dynamodb", "lambda", "email", "serverless"],

    license="Apache License 2.0",
    zip_safe=False,
)
