"""
S3 command-line client.

Bucket and object operations against S3-compatible object stores, with
optional AWS Signature Version 2 request signing and URL presigning.
"""

__version__ = "1.2.3"

from s3cli.cli import main

__all__ = ["main", "__version__"]
