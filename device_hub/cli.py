from __future__ import annotations

import argparse
import logging

import requests
import uvicorn

from device_hub.core.config import get_settings
from device_hub.core.security import create_access_token
from device_hub.exceptions import DeviceHubError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="IoT attendance device hub")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the device hub HTTP API")
    serve.add_argument("--host", default="0.0.0.0", help="Host interface")
    serve.add_argument("--port", type=int, default=5000, help="Port")

    agent = subparsers.add_parser("agent", help="Send heartbeats to a hub as this machine")
    agent.add_argument("--once", action="store_true", help="Send a single heartbeat and exit")

    token = subparsers.add_parser("token", help="Mint a dashboard bearer token for local testing")
    token.add_argument("--subject", default="local-admin", help="Token subject")
    token.add_argument("--role", default="admin", help="Role claim")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logger = logging.getLogger("device_hub.cli")

    try:
        if args.command == "serve":
            from device_hub.main import create_app

            settings = get_settings()
            if not settings.jwt_secret_configured:
                logger.warning("JWT_SECRET is not set; dashboard tokens will not survive a restart.")
            uvicorn.run(create_app(settings), host=args.host, port=args.port, log_level=settings.log_level.lower())
            return 0

        if args.command == "agent":
            from device_hub.agent import AgentConfig, HeartbeatAgent

            logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")
            agent = HeartbeatAgent(AgentConfig())
            if args.once:
                try:
                    body = agent.send_heartbeat()
                except requests.RequestException as exc:
                    logger.error("Heartbeat failed: %s", exc)
                    return 1
                print(f"Heartbeat recorded for {body.get('deviceId')}.")
                return 0
            agent.run()
            return 0

        if args.command == "token":
            settings = get_settings()
            if not settings.jwt_secret_configured:
                raise DeviceHubError("JWT_SECRET must be set so the server can verify minted tokens.")
            print(create_access_token(subject=args.subject, role=args.role, settings=settings))
            return 0
    except DeviceHubError as exc:
        logger.error("Application error: %s", exc)
        return 2
    except KeyboardInterrupt:
        return 0

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
