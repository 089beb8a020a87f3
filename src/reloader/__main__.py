"""Entry point for `python -m reloader`."""

import sys

from reloader.cli import main

sys.exit(main())
