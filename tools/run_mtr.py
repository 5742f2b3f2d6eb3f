# tools/run_mtr.py
# Usage: python3 -m tools.run_mtr <target> [options]   (same as the `pmtr` command)
import sys

from pmtr.cli import main

if __name__ == "__main__":
    sys.exit(main())
