"""Allow running as `python -m nexchat`."""

import sys

from .main import main

sys.exit(main())
