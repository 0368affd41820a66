#!/usr/bin/env python3
"""
S3 command-line client

Usage:
    python run.py -e http://127.0.0.1:9000 list                  # list Buckets
    python run.py list bucket-name/prefix                        # list Objects
    python run.py --v2sign upload bucket-name/key ./file.txt     # upload with Signature V2
    python run.py presign -X PUT bucket-name/key                 # presigned (V2) PUT URL
    python run.py --presign-exp 1h presign bucket-name/key       # URL valid for one hour
"""

import sys
from s3cli.cli import main

if __name__ == "__main__":
    sys.exit(main())
