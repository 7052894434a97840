import sys

from tool_chat.cli import main

sys.exit(main())
