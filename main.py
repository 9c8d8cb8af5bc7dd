"""
===========================
APP: Log Archiver
===========================

What it does:
- Archives files older than N days into daily ZIPs, built in a local staging folder,
  moved to the destination, verified, and only then removed from the source.
- Backs up Windows event logs from remote hosts over the administrative share.
- Runs once (for a task scheduler) or repeats on an interval.

Author: Sudharshan TK \n
License: GPLv3
"""
from logarchiver import main


if __name__ == "__main__":
    main()
