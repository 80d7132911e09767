import sys

from coding_agent.cli import main

sys.exit(main())
