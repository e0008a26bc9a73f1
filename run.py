#!/usr/bin/env python3
"""
Shop Ledger Entry Point

Starts the FastAPI server with the configured host and port.
"""

import sys

from shop_ledger.api import run_server
from shop_ledger.config import get_config
from shop_ledger.logging_config import setup_logging


if __name__ == "__main__":
    config = get_config()
    setup_logging(level=config.log_level, log_file=config.log_file)

    print("🛒 Starting Shop Ledger...")
    print(f"💾 Snapshot file: {config.snapshot_path}")
    print(f"🌐 API available at: http://localhost:{config.api_port}")
    print(f"📚 Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(host=config.api_host, port=config.api_port)
    except KeyboardInterrupt:
        print("\n👋 Shutting down Shop Ledger...")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        sys.exit(1)
