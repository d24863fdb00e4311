"""Command line interface for zero-knowledge password authentication."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from zkpassauth.auth import build_authenticator
from zkpassauth.backend import BackendError
from zkpassauth.config import Settings
from zkpassauth.errors import StoreError
from zkpassauth.logs import setup_logging
from zkpassauth.store import open_store


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--store",
        help="Identity store URL, e.g. sqlite:///identities.db or json:///users.json "
        "(default: $ZKPASS_STORE or sqlite:///identities.db)",
    )
    parser.add_argument("--log-level", help="Logging level (default: $ZKPASS_LOG_LEVEL or INFO)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    enroll_parser = subparsers.add_parser("enroll", help="Enroll an identity with a password")
    enroll_parser.add_argument("identity", help="Unique identity to enroll")
    enroll_parser.add_argument("secret", help="Password; only its commitment is stored")
    enroll_parser.add_argument(
        "--proof-out",
        help="Write the proof and public outputs as JSON to this file",
    )

    login_parser = subparsers.add_parser("authenticate", help="Check a proof for an identity")
    login_parser.add_argument("identity", help="Identity the proof is presented for")
    login_parser.add_argument(
        "proof",
        help="JSON file holding {\"proof\": {...}, \"publicSignals\": [...]}",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service")
    serve_parser.add_argument("--host", help="Bind address (default: $ZKPASS_HOST or 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, help="Port (default: $ZKPASS_PORT or 8000)")

    return parser.parse_args(argv)


def _load_bundle(path: str) -> tuple[dict, list]:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    proof = payload.get("proof")
    public = payload.get("publicSignals", payload.get("publicOutputs"))
    return proof, public


async def _run(namespace: argparse.Namespace, settings: Settings) -> int:
    store = open_store(settings.store)
    with store:
        authenticator = build_authenticator(settings, store)

        if namespace.command == "enroll":
            result = await authenticator.enroll(namespace.identity, namespace.secret)
            if result.success and namespace.proof_out:
                Path(namespace.proof_out).write_text(
                    json.dumps(result.bundle.to_dict(), indent=2), encoding="utf-8"
                )
            print(json.dumps(result.to_dict(), indent=2))
            return 0 if result.success else 1

        if namespace.command == "authenticate":
            try:
                proof, public = _load_bundle(namespace.proof)
            except (OSError, ValueError, AttributeError) as exc:
                print(f"Could not read proof file: {exc}", file=sys.stderr)
                return 1
            result = await authenticator.authenticate(namespace.identity, proof, public)
            print(json.dumps(result.to_dict(), indent=2))
            return 0 if result.success else 1

    raise RuntimeError("Unreachable")


def main(argv: list[str] | None = None) -> int:
    namespace = parse_args(sys.argv[1:] if argv is None else argv)
    settings = Settings.from_env().override(
        store=namespace.store,
        log_level=namespace.log_level.upper() if namespace.log_level else None,
        host=getattr(namespace, "host", None),
        port=getattr(namespace, "port", None),
    )
    setup_logging(settings.log_level)

    if namespace.command == "serve":
        import uvicorn

        from zkpassauth.server import create_app

        uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
        return 0

    try:
        return asyncio.run(_run(namespace, settings))
    except (BackendError, StoreError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
