"""Launch script for the battle simulator API."""

import argparse

import uvicorn


def main(argv=None):
    """Start the API server."""
    p = argparse.ArgumentParser(prog="python -m ascendancy_sim.gui.run")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    p.add_argument("--reload", action="store_true")
    args = p.parse_args(argv)

    print("=" * 70)
    print("Ascendancy Battle Simulator")
    print("=" * 70)
    print(f"\nServing on http://{args.host}:{args.port}/api")
    print("\nPress Ctrl+C to stop the server")
    print("=" * 70 + "\n")

    uvicorn.run(
        "ascendancy_sim.gui.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info"
    )


if __name__ == "__main__":
    main()
