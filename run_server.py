"""Start the control loop and the status/config API in the foreground."""

import sys

if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")

from pumpguard.cli import main

if __name__ == "__main__":
    raise SystemExit(main(["run", *sys.argv[1:]]))
