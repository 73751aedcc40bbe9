#!/usr/bin/env python3
"""
PR digest bot entry point for Railway deployment.

Railway's Nixpacks will automatically run `python main.py` when this file is present.
This starts the Flask web server receiving Slack events.
"""

import os
import sys


def main():
    """Start the Slack events server for Railway deployment."""
    # Get port from environment, handling Railway's variable expansion
    port_env = os.environ.get("PORT", "8000")

    # Railway sometimes passes '$PORT' as literal string, handle this case
    if port_env == "$PORT":
        print("Warning: Got literal '$PORT', using default port 8000")
        port = 8000
    else:
        try:
            port = int(port_env)
        except (ValueError, TypeError):
            print(f"Warning: Invalid PORT value '{port_env}', using default port 8000")
            port = 8000

    print(f"Starting PR digest bot on port {port}")

    from prdigest.run import main as run_main

    sys.argv = ["main.py", "--port", str(port)]

    run_main()


if __name__ == "__main__":
    main()
