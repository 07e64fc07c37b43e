#!/usr/bin/env python3
"""
Prompt Budget MCP - FastMCP Runner

Runs the stdio MCP server from a source checkout.
"""

import subprocess
import sys
from pathlib import Path


def main() -> None:
    """Run the Prompt Budget MCP server as a module from the project root."""
    # Get the project root
    project_root = Path(__file__).parent

    # Run the server module so package-relative imports resolve
    cmd = [sys.executable, "-m", "prompt_budget.server"]

    try:
        subprocess.run(cmd, cwd=project_root, check=False)
    except KeyboardInterrupt:
        print("\nServer stopped.", file=sys.stderr)
    except Exception as e:
        print(f"Error running server: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
