"""RunHistory - CLI 入口

Usage:
    python -m runhistory [summary [N] | latest | stats | run <runId> | failed]
"""

from runhistory.cli import main

if __name__ == "__main__":
    main()
