"""
SES Email API

Lambda runtime code for sending single-recipient email through Amazon SES
and keeping a queryable DynamoDB log of each message's lifecycle.
"""

__version__ = "1.0.0"
