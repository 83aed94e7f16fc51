"""Allow ``python -m design_stream``."""

import sys

from design_stream.cli import main

sys.exit(main())
