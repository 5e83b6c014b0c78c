#!/usr/bin/env python3
"""
Banking Application Entry Point

Starts the FastAPI server with the banking application.
Host, port and storage come from BANKING_* environment variables.
"""

import sys

from banking_app.api import run_server


if __name__ == "__main__":
    try:
        run_server()
    except KeyboardInterrupt:
        print("\nShutting down banking application...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
