"""
Suraksha Safety Backend — FastAPI
Modular entry point. All logic is split across:
  config.py, models.py, data_fetchers.py, scoring.py, extraction.py, assessment.py, routes.py

Usage:
  python backend/main.py                     # serve the API on :8000
  python backend/main.py assess 30.07 79.01  # print one assessment as JSON
"""

import argparse
import logging
import sys

logging.basicConfig(level=logging.INFO)

# Import the FastAPI app so `uvicorn main:app` works from backend/
from routes import app  # noqa: E402
from errors import ConfigurationError, WeatherFetchError  # noqa: E402


def cmd_serve(args):
    import uvicorn
    uvicorn.run(app, host=args.host, port=args.port)


def cmd_assess(args):
    from assessment import assess_risk_sync
    try:
        result = assess_risk_sync(args.lat, args.lon)
    except (ConfigurationError, WeatherFetchError) as e:
        logging.getLogger("suraksha").error(str(e))
        return 1
    print(result.model_dump_json(indent=2))
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description="Traveler safety assessment service")
    sub = parser.add_subparsers(dest="command")

    p_serve = sub.add_parser("serve", help="Run the HTTP API (default)")
    p_serve.add_argument("--host", default="0.0.0.0")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.set_defaults(func=cmd_serve)

    p_assess = sub.add_parser("assess", help="Assess a single coordinate and print JSON")
    p_assess.add_argument("lat", type=float)
    p_assess.add_argument("lon", type=float)
    p_assess.set_defaults(func=cmd_assess)

    args = parser.parse_args(argv)
    if args.command is None:
        args = parser.parse_args(["serve"] + (argv or []))
    return args.func(args) or 0


if __name__ == "__main__":
    sys.exit(main())
