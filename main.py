import sys

from agent.logger import log
from cli.main import main

if __name__ == "__main__":
    log.debug("=" * 50)
    log.debug("Starting Sitewright session")
    sys.exit(main())
