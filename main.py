#!/usr/bin/env python3
"""Main entry point for the Discourse MCP adapter.

Serves the MCP protocol on stdin/stdout; all logging goes to stderr.
See ``discourse_mcp.cli`` for the accepted flags.
"""

import sys
from pathlib import Path

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

if __name__ == "__main__":
    from discourse_mcp.cli import main

    sys.exit(main())
