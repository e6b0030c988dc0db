#!/usr/bin/env python3
"""
Launch script for the Binary Log Decoder backend.

Usage:
    python run_server.py [data_folder] [--port PORT] [--host HOST]

Examples:
    python run_server.py                    # Paths in requests used as given
    python run_server.py /path/to/logs      # Resolve relative paths in /path/to/logs
    python run_server.py --port 5000        # Run on port 5000
"""

import argparse
import os
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))


def main():
    parser = argparse.ArgumentParser(description="Binary Log Decoder Server")
    parser.add_argument(
        "data_folder",
        nargs="?",
        default=None,
        help="Folder that relative log paths are resolved against"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=8000,
        help="Port to run server on (default: 8000)"
    )
    parser.add_argument(
        "--host", "-H",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for all interfaces)"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Run in debug mode"
    )

    args = parser.parse_args()

    print("Binary Log Decoder")
    print("=" * 40)
    if args.data_folder:
        data_folder = Path(args.data_folder)
        print(f"Data folder: {data_folder.absolute()}")
        if not data_folder.exists():
            print(f"\nWarning: Data folder does not exist: {data_folder}")
        os.environ["BINLOG_DATA_FOLDER"] = str(data_folder)
    print(f"Server: http://{args.host}:{args.port}")
    print("=" * 40)

    print("\nAPI Endpoints:")
    print("  GET  /                          - Health check")
    print("  GET  /health                    - Detailed health")
    print("  POST /logs                      - Decode a log file")
    print("  GET  /logs                      - List decoded logs")
    print("  GET  /logs/{id}                 - Loading status and record types")
    print("  GET  /logs/{id}/messages/{name} - Decoded rows of one record type")
    print("\nStarting server...")

    import uvicorn

    uvicorn.run(
        "binlog.main:app",
        host=args.host,
        port=args.port,
        reload=args.debug,
        log_level="info",
    )


if __name__ == "__main__":
    main()
