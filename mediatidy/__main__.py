"""Allow running as `python -m mediatidy`."""
import sys

from .cli import main

sys.exit(main())
