from __future__ import annotations

import sys

from sketch_builder.cli.build import main

if __name__ == "__main__":
    sys.exit(main())
