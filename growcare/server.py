"""Flask development server for the care API."""

import argparse
import os

from growcare import create_app


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="growcare-server")
    parser.add_argument("--host", default=os.environ.get("FLASK_RUN_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.environ.get("FLASK_RUN_PORT", 8000)))
    args = parser.parse_args(argv)

    app = create_app()
    print(f"Server starting on http://{args.host}:{args.port}")
    print("Press Ctrl+C to stop\n")
    try:
        app.run(host=args.host, port=args.port, debug=False, use_reloader=False)
    except KeyboardInterrupt:
        print("\nServer stopped by user")
    finally:
        app.extensions["growcare_shutdown"]("server exit")
    return 0


if __name__ == "__main__":
    import sys

    raise SystemExit(main(sys.argv[1:]))
