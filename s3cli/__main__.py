import sys

from s3cli.cli import main

sys.exit(main())
